from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException, status


@dataclass(frozen=True)
class CurrentUser:
    id: str


async def get_current_user(x_user_id: str | None = Header(default=None)) -> CurrentUser:
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    return CurrentUser(id=x_user_id.strip())


__all__ = ["CurrentUser", "get_current_user"]
