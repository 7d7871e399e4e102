from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    NOT_FOUND = "not_found"
    ALL_SOURCES_FAILED = "all_sources_failed"


class SourceError(Exception):
    """
    Single error type for everything the adapters and pipelines raise.
    `kind` says what went wrong; status/url point at the failing request
    when there was one.
    """

    def __init__(self, kind: ErrorKind, message: str, status: Optional[int] = None,
                 url: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.url = url
        self.details = details

    def __repr__(self) -> str:
        return f"SourceError({self.kind.value!r}, {self.message!r}, status={self.status}, url={self.url!r})"

    def to_dict(self) -> dict:
        out = {"kind": self.kind.value, "message": self.message}
        if self.status is not None:
            out["status"] = self.status
        if self.url:
            out["url"] = self.url
        return out
