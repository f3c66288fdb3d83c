"""Fetch pipeline: transport, pagination, scope resolution, reconciliation, batching."""

from worklog_app.core.errors import (
    AuthenticationError,
    ConfigurationError,
    HttpError,
    NotFoundError,
    PaginationError,
    PartialDataWarning,
    RateLimitError,
    TransientNetworkError,
    TransportError,
    WorklogError,
)
from worklog_app.core.models import (
    CurrentUser,
    DateWindow,
    Group,
    IssueModel,
    Query,
    RunStatistics,
    SpecificUser,
    WorkLogModel,
)

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "CurrentUser",
    "DateWindow",
    "Group",
    "HttpError",
    "IssueModel",
    "NotFoundError",
    "PaginationError",
    "PartialDataWarning",
    "Query",
    "RateLimitError",
    "RunStatistics",
    "SpecificUser",
    "TransientNetworkError",
    "TransportError",
    "WorkLogModel",
    "WorklogError",
]
