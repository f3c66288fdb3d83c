"""Page walkers for Jira's cursor-paginated and offset-paginated resources."""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import PaginationError, PartialDataWarning

logger = logging.getLogger(__name__)

CursorFetch = Callable[[str | None], dict[str, Any]]
OffsetFetch = Callable[[int, int], dict[str, Any]]


@dataclass(slots=True)
class PageWalk:
    items: list[dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    truncated: bool = False


def _page_items(data: Any, items_key: str, label: str, page_no: int) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        raise PaginationError(f"{label}: page {page_no} is not a JSON object")
    items = data.get(items_key)
    if items is None:
        return []
    if not isinstance(items, list):
        raise PaginationError(f"{label}: page {page_no} field '{items_key}' is not a list")
    return items


def _truncate(walk: PageWalk, max_items: int, label: str) -> None:
    del walk.items[max_items:]
    walk.truncated = True
    warnings.warn(
        PartialDataWarning(f"{label}: stopped at safety limit of {max_items} items"),
        stacklevel=3,
    )


def walk_cursor(
    fetch_page: CursorFetch,
    *,
    items_key: str = "issues",
    max_items: int | None = None,
    label: str = "search",
) -> PageWalk:
    """Follow ``nextPageToken`` cursors until the last page.

    ``fetch_page(token)`` receives ``None`` for the first page. The walk stops
    when the server flags ``isLast``, returns an empty page or no token, or when
    ``max_items`` is reached (truncating with a :class:`PartialDataWarning`).
    A token the server already handed out raises :class:`PaginationError`
    instead of looping forever.
    """
    walk = PageWalk()
    token: str | None = None
    seen_tokens: set[str] = set()
    while True:
        data = fetch_page(token)
        walk.pages += 1
        page = _page_items(data, items_key, label, walk.pages)
        walk.items.extend(page)
        is_last = bool(data.get("isLast", False))
        logger.debug(
            "%s page %d: %d items (total so far: %d, isLast=%s)",
            label,
            walk.pages,
            len(page),
            len(walk.items),
            is_last,
        )
        if max_items is not None and len(walk.items) > max_items:
            _truncate(walk, max_items, label)
            return walk
        if not page or is_last:
            return walk
        if max_items is not None and len(walk.items) >= max_items:
            _truncate(walk, max_items, label)
            return walk
        next_token = data.get("nextPageToken")
        if not next_token:
            return walk
        if next_token in seen_tokens or next_token == token:
            raise PaginationError(f"{label}: server repeated page token {next_token!r}")
        seen_tokens.add(next_token)
        token = next_token


def walk_offset(
    fetch_page: OffsetFetch,
    *,
    page_size: int,
    items_key: str,
    max_items: int | None = None,
    label: str = "listing",
) -> PageWalk:
    """Walk ``startAt``/``maxResults`` pages.

    Two response shapes are supported. When a page carries an integer
    ``total`` the walk continues until the running offset reaches it (a short
    page alone does not end the walk). Without ``total`` the walk follows the
    ``isLast`` flag. An empty page always ends the walk.
    """
    walk = PageWalk()
    offset = 0
    while True:
        data = fetch_page(offset, page_size)
        walk.pages += 1
        page = _page_items(data, items_key, label, walk.pages)
        walk.items.extend(page)
        offset += len(page)
        total = data.get("total")
        if isinstance(total, int) and not isinstance(total, bool):
            more = bool(page) and offset < total
        else:
            more = bool(page) and not data.get("isLast", False)
        logger.debug(
            "%s page %d: %d items (offset=%d, total=%s)", label, walk.pages, len(page), offset, total
        )
        if max_items is not None and len(walk.items) >= max_items:
            if more or len(walk.items) > max_items:
                _truncate(walk, max_items, label)
            return walk
        if not more:
            return walk
