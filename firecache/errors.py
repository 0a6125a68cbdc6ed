"""Error taxonomy for the search endpoint.

Errors raised before the response stream opens are rendered as JSON bodies
with ``status_code``. Once streaming has started the HTTP status is fixed, so
the same errors are reported as a terminal ``error`` event carrying
``message``.
"""
from __future__ import annotations


class FireCacheError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FireCacheError):
    """The request body did not yield a usable query."""

    status_code = 400


class ConfigurationError(FireCacheError):
    """A required setting (e.g. the generation credential) is missing."""

    status_code = 500


class RetrievalError(FireCacheError):
    """The search/scrape service failed or answered with a non-2xx status."""

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        body: str = "",
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body

    @classmethod
    def from_response(cls, status: int, reason: str, body: str) -> "RetrievalError":
        return cls(
            f"Search and scrape service error: {reason or status} - {body}",
            upstream_status=status,
            body=body,
        )


class GenerationError(FireCacheError):
    """The language-model backend failed during answer or follow-up generation."""

    status_code = 502


class UnknownError(FireCacheError):
    status_code = 500

    @classmethod
    def wrap(cls, exc: BaseException) -> "UnknownError":
        return cls(str(exc) or "Unknown error")
