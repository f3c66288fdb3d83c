"""Error taxonomy for the work-log fetch pipeline.

Everything fatal derives from :class:`WorklogError` (a ``RuntimeError``) so the
command line entry point can catch one type, print the partial execution
summary and exit non-zero. Truncation is not an error: it is reported through
:class:`PartialDataWarning` and the run keeps going.
"""

from __future__ import annotations


class WorklogError(RuntimeError):
    """Base class for every failure raised by ``worklog_app``."""


class ConfigurationError(WorklogError):
    """Missing/placeholder credentials, bad scope selection or date window."""


class HttpError(WorklogError):
    """Non-2xx response from Jira after the retry policy gave up."""

    def __init__(self, message: str, *, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class AuthenticationError(HttpError):
    """HTTP 401. Never retried."""


class NotFoundError(HttpError):
    """HTTP 404, or a lookup that found no exact match."""


class RateLimitError(HttpError):
    """HTTP 429 still returned after ``max_retries`` retries."""


class TransportError(WorklogError):
    """Network failure that did not produce an HTTP response."""


class TransientNetworkError(TransportError):
    """Connection reset / timeout that persisted through every retry."""


class PaginationError(WorklogError):
    """The server returned a page we cannot continue from."""


class PartialDataWarning(UserWarning):
    """A fetch stopped at a safety ceiling; results are truncated."""


# Errors that abort the whole run even inside the per-issue loop.
FATAL_ERRORS: tuple[type[WorklogError], ...] = (
    AuthenticationError,
    RateLimitError,
    TransientNetworkError,
)
