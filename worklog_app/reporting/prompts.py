"""Interactive prompts for the date window and the JQL query."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from worklog_app.core.config import DEFAULT_DATE_RANGE_DAYS
from worklog_app.core.errors import ConfigurationError
from worklog_app.core.models import DateWindow

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


def prompt_date_range(
    input_fn: InputFn = input,
    *,
    today: date | None = None,
    default_days: int = DEFAULT_DATE_RANGE_DAYS,
    out: OutputFn = print,
) -> DateWindow:
    """Ask for "last N days" (default) or a custom range, re-asking until valid."""
    today = today or date.today()
    out("")
    out("Date Range Options:")
    out(f"   1. Last {default_days} days (default)")
    out("   2. Custom date range")
    choice = input_fn("Select option (1 or 2, press Enter for default): ").strip()
    if choice != "2":
        return DateWindow.last_days(default_days, today=today)

    out("Enter custom date range (format: YYYY-MM-DD)")
    while True:
        start = input_fn("Start date (e.g., 2025-09-01): ").strip()
        end = input_fn("End date (e.g., 2025-10-09): ").strip()
        try:
            return DateWindow.parse(start, end).validate(today)
        except ConfigurationError as exc:
            out(f"Invalid date range: {exc}")


def prompt_query(default: str | None, input_fn: InputFn = input, *, out: OutputFn = print) -> str:
    """Offer the configured JQL or a custom one; an empty custom entry keeps the default."""
    if not default:
        while True:
            jql = input_fn("Enter JQL query: ").strip()
            if jql:
                return jql
            out("JQL query cannot be empty.")

    out("")
    out("JQL Query Options:")
    out(f"   1. Use configured JQL: {default}")
    out("   2. Enter custom JQL query")
    choice = input_fn("Select option (1 or 2, press Enter for option 1): ").strip()
    if choice != "2":
        return default
    jql = input_fn("Enter your JQL query: ").strip()
    if not jql:
        out("Empty query, using the configured JQL.")
        return default
    return jql
