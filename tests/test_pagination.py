import pytest

from worklog_app.core.errors import PaginationError, PartialDataWarning
from worklog_app.core.pagination import walk_cursor, walk_offset


def _cursor_pages(*pages):
    calls = []
    it = iter(pages)

    def fetch(token):
        calls.append(token)
        return next(it)

    return fetch, calls


def test_cursor_stops_on_is_last():
    fetch, calls = _cursor_pages(
        {"issues": [1, 2], "nextPageToken": "a"},
        {"issues": [3], "isLast": True, "nextPageToken": "b"},
    )
    walk = walk_cursor(fetch)
    assert walk.items == [1, 2, 3]
    assert calls == [None, "a"]
    assert not walk.truncated


def test_cursor_stops_on_empty_page():
    fetch, calls = _cursor_pages({"issues": [1], "nextPageToken": "a"}, {"issues": [], "nextPageToken": "b"})
    walk = walk_cursor(fetch)
    assert walk.items == [1]
    assert len(calls) == 2


def test_cursor_stops_without_token():
    fetch, calls = _cursor_pages({"issues": [1, 2]})
    assert walk_cursor(fetch).items == [1, 2]
    assert calls == [None]


def test_cursor_repeated_token_is_an_error():
    fetch, _ = _cursor_pages(
        {"issues": [1], "nextPageToken": "a"},
        {"issues": [2], "nextPageToken": "a"},
    )
    with pytest.raises(PaginationError):
        walk_cursor(fetch)


def test_cursor_ceiling_truncates_with_warning():
    fetch, calls = _cursor_pages(
        {"issues": list(range(3)), "nextPageToken": "a"},
        {"issues": list(range(3, 6)), "nextPageToken": "b"},
    )
    with pytest.warns(PartialDataWarning):
        walk = walk_cursor(fetch, max_items=4)
    assert walk.items == [0, 1, 2, 3]
    assert walk.truncated
    assert len(calls) == 2


def test_cursor_non_object_page_raises():
    with pytest.raises(PaginationError):
        walk_cursor(lambda token: ["not", "a", "page"])


def test_cursor_items_must_be_a_list():
    with pytest.raises(PaginationError):
        walk_cursor(lambda token: {"issues": "oops"})


def _offset_source(items, *, with_total=True, short_pages=False):
    calls = []

    def fetch(offset, size):
        calls.append(offset)
        # Servers may cap the page size below the requested one
        effective = max(1, size // 2) if short_pages else size
        page = items[offset : offset + effective]
        data = {"values": page, "startAt": offset}
        if with_total:
            data["total"] = len(items)
        else:
            data["isLast"] = offset + len(page) >= len(items)
        return data

    return fetch, calls


def test_offset_total_mode_continues_past_short_pages():
    fetch, calls = _offset_source(list(range(10)), short_pages=True)
    walk = walk_offset(fetch, page_size=4, items_key="values")
    assert walk.items == list(range(10))
    assert calls == [0, 2, 4, 6, 8]


def test_offset_is_last_mode():
    fetch, calls = _offset_source(list(range(7)), with_total=False)
    walk = walk_offset(fetch, page_size=3, items_key="values")
    assert walk.items == list(range(7))
    assert calls == [0, 3, 6]


def test_offset_empty_page_stops_even_if_total_larger():
    def fetch(offset, size):
        return {"values": [] if offset else [1, 2], "total": 50}

    walk = walk_offset(fetch, page_size=2, items_key="values")
    assert walk.items == [1, 2]
    assert walk.pages == 2


def test_offset_ceiling_only_warns_when_more_remain():
    fetch, _ = _offset_source(list(range(6)))
    walk = walk_offset(fetch, page_size=3, items_key="values", max_items=6)
    assert walk.items == list(range(6))
    assert not walk.truncated

    fetch, _ = _offset_source(list(range(9)))
    with pytest.warns(PartialDataWarning):
        walk = walk_offset(fetch, page_size=3, items_key="values", max_items=6)
    assert len(walk.items) == 6
    assert walk.truncated
