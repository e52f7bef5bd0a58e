"""Wizard session storage."""

from .store import DraftSessionStore, InMemoryDraftSessionStore, get_draft_session_store

__all__ = ["DraftSessionStore", "InMemoryDraftSessionStore", "get_draft_session_store"]
