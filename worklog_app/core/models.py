"""Domain data models: credentials, scope selectors, issues, work logs, run statistics."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .errors import ConfigurationError

PLACEHOLDER_VALUES: frozenset[str] = frozenset(
    {
        "",
        "<email>",
        "<apitoken>",
        "<api_token>",
        "your_jira_api_token",
        "user@example.com",
    }
)


@dataclass(frozen=True, slots=True)
class Credential:
    email: str
    api_token: str

    def authorization_header(self) -> str:
        """Return the ``Authorization`` header value for basic auth."""
        raw = f"{self.email}:{self.api_token}".encode()
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def is_placeholder(self) -> bool:
        return (
            self.email.strip().lower() in PLACEHOLDER_VALUES
            or self.api_token.strip().lower() in PLACEHOLDER_VALUES
        )


# ------------------ Scope selectors ------------------
@dataclass(frozen=True, slots=True)
class SpecificUser:
    email: str


@dataclass(frozen=True, slots=True)
class CurrentUser:
    pass


@dataclass(frozen=True, slots=True)
class Group:
    name: str


@dataclass(frozen=True, slots=True)
class Query:
    jql: str


ScopeSelector = SpecificUser | CurrentUser | Group | Query


@dataclass(frozen=True, slots=True)
class DateWindow:
    start: date
    end: date

    @classmethod
    def last_days(cls, days: int, today: date | None = None) -> DateWindow:
        """Window covering the last ``days`` days up to and including today."""
        today = today or date.today()
        if days < 0:
            raise ConfigurationError(f"Relative day count must be >= 0, got {days}")
        return cls(start=today - timedelta(days=days), end=today)

    @classmethod
    def parse(cls, start: str, end: str) -> DateWindow:
        try:
            return cls(start=date.fromisoformat(start.strip()), end=date.fromisoformat(end.strip()))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid date (expected YYYY-MM-DD): {exc}") from exc

    def validate(self, today: date | None = None) -> DateWindow:
        today = today or date.today()
        if self.start > self.end:
            raise ConfigurationError(f"Start date {self.start} is after end date {self.end}")
        if self.end > today:
            raise ConfigurationError(f"End date {self.end} is in the future")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True, slots=True)
class IssueModel:
    key: str
    issue_type: str | None
    summary: str | None
    project_key: str | None
    status: str | None
    assignee: str | None = None


@dataclass(frozen=True, slots=True)
class WorkLogModel:
    issue_key: str
    author_account_id: str | None
    author_display_name: str | None
    author_email: str | None
    time_spent_seconds: int
    started: datetime
    comment: str = ""
    time_spent: str | None = None
    worklog_id: str | None = None

    @property
    def date(self) -> date:
        return self.started.date()

    @property
    def hours(self) -> float:
        return self.time_spent_seconds / 3600


@dataclass(slots=True)
class RunStatistics:
    api_calls: int = 0
    issues_fetched: int = 0
    worklogs_fetched: int = 0
    worklogs_matched: int = 0
    total_time_seconds: int = 0
    truncations: int = 0
    failed_issues: list[str] = field(default_factory=list)
    strategy: str | None = None
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    def merge(self, other: RunStatistics) -> RunStatistics:
        """Fold a child accumulator (e.g. one batch) into this one."""
        self.api_calls += other.api_calls
        self.issues_fetched += other.issues_fetched
        self.worklogs_fetched += other.worklogs_fetched
        self.worklogs_matched += other.worklogs_matched
        self.total_time_seconds += other.total_time_seconds
        self.truncations += other.truncations
        self.failed_issues.extend(other.failed_issues)
        return self

    def finish(self) -> RunStatistics:
        self.finished_at = time.monotonic()
        return self

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.started_at)

    @property
    def total_hours(self) -> float:
        return self.total_time_seconds / 3600

    @property
    def match_rate(self) -> float | None:
        if not self.worklogs_fetched:
            return None
        return self.worklogs_matched / self.worklogs_fetched

    @property
    def hours_per_issue(self) -> float:
        if not self.issues_fetched:
            return 0.0
        return self.total_hours / self.issues_fetched

    @property
    def hours_per_worklog(self) -> float:
        if not self.worklogs_matched:
            return 0.0
        return self.total_hours / self.worklogs_matched
