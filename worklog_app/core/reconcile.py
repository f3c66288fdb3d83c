"""Client-side reconciliation of work logs against the date window and identity set.

Upstream JQL (``worklogDate``, ``worklogAuthor``, ``updated``) only narrows the
candidate issues; an issue carries every worklog ever logged on it. This filter
is what makes the final record set exact.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time

import pytz

from .models import DateWindow, WorkLogModel


def window_bounds(window: DateWindow, tz) -> tuple[datetime, datetime]:
    """Start-of-day and end-of-day for the window, localized in ``tz``."""
    if isinstance(tz, str):
        tz = pytz.timezone(tz)
    start = tz.localize(datetime.combine(window.start, time.min))
    end = tz.localize(datetime.combine(window.end, time.max))
    return start, end


def within_window(ts: datetime, start: datetime, end: datetime) -> bool:
    return start <= ts <= end


def filter_worklogs(
    entries: Iterable[WorkLogModel],
    window: DateWindow,
    account_ids: frozenset[str] | None,
    tz,
) -> list[WorkLogModel]:
    """Keep entries started inside ``window`` and authored by ``account_ids``.

    ``account_ids=None`` disables the author predicate (free-form JQL scope).
    An empty set matches nothing.
    """
    start, end = window_bounds(window, tz)
    kept = []
    for entry in entries:
        if not within_window(entry.started, start, end):
            continue
        if account_ids is not None and entry.author_account_id not in account_ids:
            continue
        kept.append(entry)
    return kept
