from __future__ import annotations

from fastapi import Depends

from safari_quote.core.config import get_settings
from safari_quote.db.pool import get_pool
from safari_quote.db.postgres import PostgresOfferStore, PostgresReferenceDataStore
from safari_quote.db.stores import OfferStore, ReferenceDataStore
from safari_quote.notifications.client import get_email_client
from safari_quote.notifications.service import NotificationDispatcher
from safari_quote.session.store import DraftSessionStore, get_draft_session_store


def get_offer_store(pool=Depends(get_pool)) -> OfferStore:
    return PostgresOfferStore(pool)


def get_reference_store(pool=Depends(get_pool)) -> ReferenceDataStore:
    return PostgresReferenceDataStore(pool, attempts=get_settings().reference_retry_attempts)


def get_session_store() -> DraftSessionStore:
    return get_draft_session_store()


def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(get_email_client())


__all__ = ["get_offer_store", "get_reference_store", "get_session_store", "get_dispatcher"]
