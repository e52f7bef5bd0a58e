"""Error types shared across the quote service."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    CATALOG_ENTRY_NOT_FOUND = "CATALOG_ENTRY_NOT_FOUND"
    LINE_ITEM_NOT_FOUND = "LINE_ITEM_NOT_FOUND"
    UNKNOWN_CATEGORY = "UNKNOWN_CATEGORY"


class DatastoreError(RuntimeError):
    """A query or write against the backing database failed."""


class QuoteError(Exception):
    """Base domain error with a code and a user-safe message."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class SessionNotFoundError(QuoteError):
    def __init__(self, session_id: str) -> None:
        super().__init__(ErrorCode.SESSION_NOT_FOUND, "Quote session not found")
        self.session_id = session_id


class CatalogEntryNotFoundError(QuoteError):
    def __init__(self, kind: str, entry_id: int) -> None:
        super().__init__(ErrorCode.CATALOG_ENTRY_NOT_FOUND, f"{kind} {entry_id} not found")
        self.kind = kind
        self.entry_id = entry_id


class LineItemNotFoundError(QuoteError):
    def __init__(self, category: str, item_id: str) -> None:
        super().__init__(ErrorCode.LINE_ITEM_NOT_FOUND, f"No {category} item with id {item_id}")
        self.category = category
        self.item_id = item_id


class UnknownCategoryError(QuoteError):
    def __init__(self, category: str) -> None:
        super().__init__(ErrorCode.UNKNOWN_CATEGORY, f"Unknown line item category: {category}")
        self.category = category


__all__ = [
    "ErrorCode",
    "DatastoreError",
    "QuoteError",
    "SessionNotFoundError",
    "CatalogEntryNotFoundError",
    "LineItemNotFoundError",
    "UnknownCategoryError",
]
