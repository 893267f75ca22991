from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    CONTENT_SOURCE_UNAVAILABLE = "CONTENT_SOURCE_UNAVAILABLE"
    CONTENT_QUERY_FAILED = "CONTENT_QUERY_FAILED"
    INVALID_SETTINGS = "INVALID_SETTINGS"
    INVALID_EVENT = "INVALID_EVENT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class SitemapError(Exception):
    """Raised for all expected failure conditions outside the render path.

    Content source adapters raise it when the store cannot answer a query;
    the selector turns those into empty results. The HTTP layer serialises
    the rest into a structured error response.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
