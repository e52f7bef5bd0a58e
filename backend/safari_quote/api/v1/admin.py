from __future__ import annotations

from fastapi import APIRouter, Depends

from safari_quote.api.deps import get_session_store
from safari_quote.session.store import DraftSessionStore

router = APIRouter(prefix="/admin")


@router.get("/health")
async def health(sessions: DraftSessionStore = Depends(get_session_store)) -> dict[str, bool]:
    return {"ok": True, "sessions": await sessions.ping()}
