from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    FETCH_FAILED = "FETCH_FAILED"
    UNKNOWN_MESSAGE = "UNKNOWN_MESSAGE"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    MISSING_SENDER_TAB = "MISSING_SENDER_TAB"
    INVALID_DOMAIN = "INVALID_DOMAIN"
    STORAGE_FAILED = "STORAGE_FAILED"
    CONTEXT_INVALIDATED = "CONTEXT_INVALIDATED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PrivacyPalError(Exception):
    """Raised for all expected failure conditions crossing a context boundary.

    The router serialises these into an error response so the sender's
    pending request always resolves. The content watcher logs and drops the
    ones raised by the scrape client.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class StorageError(Exception):
    """Raised by LocalStorage when the underlying database read or write fails."""
