"""Report filename generation."""

from __future__ import annotations

import re
from datetime import datetime

from worklog_app.core.scope import ResolvedScope

_PROJECT_RE = re.compile(r"project\s*[=~]\s*[\"']?([A-Z][A-Z0-9_-]*)", re.IGNORECASE)


def sanitize(name: str) -> str:
    """Collapse anything outside ``[A-Za-z0-9_-]`` into single underscores."""
    cleaned = re.sub(r"[^a-zA-Z0-9_-]", "_", name)
    cleaned = re.sub(r"_+", "_", cleaned).strip("_")
    return cleaned or "report"


def jql_base_name(jql: str) -> str:
    match = _PROJECT_RE.search(jql)
    if match:
        return f"Project_{match.group(1)}"
    if "order by" in jql.lower():
        return "Custom_JQL"
    return "JQL_Query"


def report_basename(scope: ResolvedScope, now: datetime) -> str:
    """``{name}_{YYYY-MM-DD}_{HH-MM-SS}`` without an extension."""
    base = jql_base_name(scope.selector.jql) if scope.is_query else sanitize(scope.label)
    return f"{base}_{now:%Y-%m-%d}_{now:%H-%M-%S}"


def report_filename(scope: ResolvedScope, now: datetime, suffix: str = ".xlsx") -> str:
    return report_basename(scope, now) + suffix
