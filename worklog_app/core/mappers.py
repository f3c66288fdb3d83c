"""Mapping raw Jira issue / worklog / user JSON into model instances."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd
import pytz

from .models import IssueModel, WorkLogModel
from .richtext import comment_to_text


def parse_dt(value: Any, tz=None) -> datetime | None:
    """Parse a Jira timestamp (``2025-09-10T09:30:00.000+0530``) into an aware datetime.

    Naive values are taken as UTC. When ``tz`` is given the result is
    converted into it.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize(pytz.UTC)
    if tz is not None:
        ts = ts.tz_convert(tz)
    return ts.to_pydatetime()


def _name(block: Any, attr: str = "name") -> str | None:
    if isinstance(block, dict):
        return block.get(attr)
    return None


def map_issue(raw: dict[str, Any]) -> IssueModel:
    fields = raw.get("fields") or {}
    return IssueModel(
        key=raw.get("key"),
        issue_type=_name(fields.get("issuetype")),
        summary=fields.get("summary"),
        project_key=_name(fields.get("project"), "key"),
        status=_name(fields.get("status")),
        assignee=_name(fields.get("assignee"), "displayName"),
    )


def map_issues(raw_issues: Iterable[dict[str, Any]]) -> list[IssueModel]:
    return [map_issue(r) for r in raw_issues if r.get("key")]


def map_worklog(raw: dict[str, Any], issue_key: str, tz=None) -> WorkLogModel | None:
    """Map one worklog; returns None when ``started`` is missing or unparsable."""
    started = parse_dt(raw.get("started"), tz)
    if started is None:
        return None
    author = raw.get("author") or {}
    seconds = raw.get("timeSpentSeconds") or 0
    try:
        seconds = max(0, int(seconds))
    except (TypeError, ValueError):
        seconds = 0
    return WorkLogModel(
        issue_key=issue_key,
        author_account_id=author.get("accountId"),
        author_display_name=author.get("displayName"),
        author_email=author.get("emailAddress") or None,
        time_spent_seconds=seconds,
        started=started,
        comment=comment_to_text(raw.get("comment")),
        time_spent=raw.get("timeSpent"),
        worklog_id=str(raw["id"]) if raw.get("id") is not None else None,
    )


def map_worklogs(raw_logs: Iterable[dict[str, Any]], issue_key: str, tz=None) -> list[WorkLogModel]:
    out = []
    for raw in raw_logs:
        mapped = map_worklog(raw, issue_key, tz)
        if mapped is not None:
            out.append(mapped)
    return out


def account_ids(users: Iterable[dict[str, Any]]) -> frozenset[str]:
    return frozenset(u["accountId"] for u in users if isinstance(u, dict) and u.get("accountId"))
