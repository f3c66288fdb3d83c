from dataclasses import replace
from datetime import date, datetime

import pytest
import pytz
from fakes import FakeJira, FakeResponse, FakeSession, raw_issue, raw_worklog

from worklog_app.core.errors import AuthenticationError, ConfigurationError, RateLimitError
from worklog_app.core.models import DateWindow, Group, Query, RunStatistics
from worklog_app.core.service import WorklogService, partition

WINDOW = DateWindow(date(2025, 9, 1), date(2025, 9, 30))
TODAY = date(2025, 10, 15)


@pytest.fixture
def jira():
    site = FakeJira()
    site.groups["X"] = [
        {"accountId": "x", "displayName": "Xavier"},
        {"accountId": "y", "displayName": "Yara"},
    ]
    return site


def _service(make_api, jira, settings, **kwargs):
    delays = []
    api = make_api(
        FakeSession(route=jira),
        max_retries=settings.max_retries,
        retry_base_delay=settings.retry_base_delay,
    )
    svc = WorklogService(api, settings, sleep=delays.append, **kwargs)
    return svc, delays


def test_group_scenario_end_to_end(make_api, jira, settings):
    jira.search = {"worklogDate": [raw_issue("ABC-1", "Login")]}
    jira.worklogs["ABC-1"] = [
        raw_worklog("x", "2025-09-10T09:00:00.000+0000", 3600, wid=1),
        raw_worklog("y", "2025-09-12T09:00:00.000+0000", 1800, wid=2),
        raw_worklog("z", "2025-09-12T09:00:00.000+0000", 7200, wid=3),
        raw_worklog("x", "2025-08-20T09:00:00.000+0000", 600, wid=4),
    ]
    svc, _ = _service(make_api, jira, settings)
    stats = RunStatistics()
    run = svc.run(Group("X"), WINDOW, stats=stats, today=TODAY)

    assert [(e.issue_key, e.author_account_id) for e in run.entries] == [("ABC-1", "x"), ("ABC-1", "y")]
    assert stats.strategy == "worklogDate + worklogAuthor"
    assert stats.issues_fetched == 1
    assert stats.worklogs_fetched == 4
    assert stats.worklogs_matched == 2
    assert stats.total_time_seconds == 5400
    # group page + one search + one worklog page
    assert stats.api_calls == 3


def test_group_scenario_via_second_strategy(make_api, jira, settings):
    jira.search = {"worklogDate": [], "worklogAuthor": [raw_issue("ABC-1")], "updated": [raw_issue("ZZZ-1")]}
    jira.worklogs["ABC-1"] = [
        raw_worklog("x", "2025-09-03T08:00:00.000+0000", 7200),
        raw_worklog("y", "2025-09-29T17:00:00.000+0000", 900),
        raw_worklog("x", "2025-10-01T08:00:00.000+0000", 3600),
    ]
    svc, _ = _service(make_api, jira, settings)
    run = svc.run(Group("X"), WINDOW, stats=RunStatistics(), today=TODAY)
    assert [e.issue_key for e in run.entries] == ["ABC-1", "ABC-1"]
    assert sum(e.hours for e in run.entries) == (7200 + 900) / 3600
    assert run.discovery.strategy == "worklogAuthor only"
    assert not any(q.startswith("updated") for q in jira.searched)


def test_window_is_validated_before_any_request(make_api, jira, settings):
    svc, _ = _service(make_api, jira, settings)
    stats = RunStatistics()
    with pytest.raises(ConfigurationError):
        svc.run(Group("X"), DateWindow(date(2025, 9, 30), date(2025, 9, 1)), stats=stats, today=TODAY)
    with pytest.raises(ConfigurationError):
        svc.run(Group("X"), DateWindow(date(2025, 9, 1), date(2025, 11, 1)), stats=stats, today=TODAY)
    assert stats.api_calls == 0


def test_matched_entries_are_within_window_and_scope(make_api, jira, settings):
    issues = [raw_issue(f"ABC-{i}") for i in range(1, 4)]
    jira.search = {"worklogDate": issues}
    for i in range(1, 4):
        jira.worklogs[f"ABC-{i}"] = [
            raw_worklog("x", f"2025-09-0{i}T10:00:00.000+0000"),
            raw_worklog("outsider", f"2025-09-0{i}T10:00:00.000+0000"),
            raw_worklog("y", "2025-10-02T10:00:00.000+0000"),
        ]
    svc, _ = _service(make_api, jira, settings)
    run = svc.run(Group("X"), WINDOW, stats=RunStatistics(), today=TODAY)
    assert len(run.entries) == 3
    assert all(e.author_account_id in {"x", "y"} for e in run.entries)
    assert all(WINDOW.start <= e.date <= WINDOW.end for e in run.entries)


def test_batches_pause_between_but_not_after(make_api, jira, settings):
    issues = [raw_issue(f"ABC-{i}") for i in range(1, 8)]
    jira.search = {"worklogDate": issues}
    for i in range(1, 8):
        jira.worklogs[f"ABC-{i}"] = [raw_worklog("x", "2025-09-05T10:00:00.000+0000", 60)]
    cfg = replace(settings, batch_size=3, batch_delay=1.5)
    svc, delays = _service(make_api, jira, cfg)
    stats = RunStatistics()
    run = svc.run(Group("X"), WINDOW, stats=stats, today=TODAY)
    assert delays == [1.5, 1.5]
    assert len(run.entries) == 7
    assert stats.worklogs_matched == 7
    assert stats.api_calls == 1 + 1 + 7


def test_batching_only_for_groups(make_api, jira, settings):
    jira.search = {"project": [raw_issue(f"ABC-{i}") for i in range(1, 6)]}
    cfg = replace(settings, batch_size=2)
    svc, delays = _service(make_api, jira, cfg)
    run = svc.run(Query("project = ABC"), WINDOW, stats=RunStatistics(), today=TODAY)
    assert len(run.issues) == 5
    assert delays == []


def test_issue_errors_are_skipped_and_recorded(make_api, jira, settings):
    jira.search = {"worklogDate": [raw_issue("ABC-1"), raw_issue("ABC-2")]}
    jira.worklog_errors["ABC-1"] = FakeResponse(500, {"errorMessages": ["boom"]})
    jira.worklogs["ABC-2"] = [raw_worklog("x", "2025-09-05T10:00:00.000+0000")]
    svc, _ = _service(make_api, jira, settings)
    stats = RunStatistics()
    run = svc.run(Group("X"), WINDOW, stats=stats, today=TODAY)
    assert [e.issue_key for e in run.entries] == ["ABC-2"]
    assert stats.failed_issues == ["ABC-1"]


@pytest.mark.parametrize("status,error", [(401, AuthenticationError), (429, RateLimitError)])
def test_fatal_errors_abort_with_partial_stats(make_api, jira, settings, status, error):
    jira.search = {"worklogDate": [raw_issue("ABC-1"), raw_issue("ABC-2")]}
    jira.worklogs["ABC-1"] = [raw_worklog("x", "2025-09-05T10:00:00.000+0000")]
    jira.worklog_errors["ABC-2"] = FakeResponse(status)
    svc, _ = _service(make_api, jira, replace(settings, max_retries=0))
    stats = RunStatistics()
    with pytest.raises(error):
        svc.run(Group("X"), WINDOW, stats=stats, today=TODAY)
    assert stats.worklogs_matched == 1
    assert stats.api_calls == 4


def test_fatal_error_inside_batch_keeps_batch_counters(make_api, jira, settings):
    jira.search = {"worklogDate": [raw_issue(f"ABC-{i}") for i in range(1, 5)]}
    for i in range(1, 4):
        jira.worklogs[f"ABC-{i}"] = [raw_worklog("x", "2025-09-05T10:00:00.000+0000")]
    jira.worklog_errors["ABC-4"] = FakeResponse(401)
    svc, _ = _service(make_api, jira, replace(settings, batch_size=2))
    stats = RunStatistics()
    with pytest.raises(AuthenticationError):
        svc.run(Group("X"), WINDOW, stats=stats, today=TODAY)
    assert stats.worklogs_matched == 3


def test_no_issues_means_no_worklog_requests(make_api, jira, settings):
    svc, _ = _service(make_api, jira, settings)
    stats = RunStatistics()
    run = svc.run(Group("X"), WINDOW, stats=stats, today=TODAY)
    assert run.entries == []
    assert stats.api_calls == 1 + 3


def test_partition():
    assert partition([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert partition([], 3) == []
    with pytest.raises(ValueError):
        partition([1], 0)


def test_progress_reports_each_issue_across_batches(make_api, jira, settings):
    jira.search = {"worklogDate": [raw_issue(f"ABC-{i}") for i in range(1, 4)]}
    calls = []
    svc, _ = _service(make_api, jira, replace(settings, batch_size=2))
    svc.run(Group("X"), WINDOW, stats=RunStatistics(), today=TODAY, progress=lambda *a: calls.append(a))
    assert calls == [
        ("Resolving scope", None, None),
        ("Searching issues", None, None),
        ("Fetching work logs for ABC-1", 1, 3),
        ("Fetching work logs for ABC-2", 2, 3),
        ("Fetching work logs for ABC-3", 3, 3),
    ]


def test_query_scope_with_author_emails_filters_authors(make_api, jira, settings):
    jira.users = [{"accountId": "x", "displayName": "Xavier", "emailAddress": "x@example.com"}]
    jira.search = {"project = ABC": [raw_issue("ABC-1")]}
    jira.worklogs["ABC-1"] = [
        raw_worklog("x", "2025-09-10T09:00:00.000+0000", 3600),
        raw_worklog("z", "2025-09-11T09:00:00.000+0000", 1800),
    ]
    plain, _ = _service(make_api, jira, settings)
    run = plain.run(Query("project = ABC"), WINDOW, stats=RunStatistics(), today=TODAY)
    assert sorted(e.author_account_id for e in run.entries) == ["x", "z"]

    cfg = replace(settings, jql="project = ABC", jql_author_emails=("x@example.com",))
    filtered, _ = _service(make_api, jira, cfg)
    run = filtered.run(Query("project = ABC"), WINDOW, stats=RunStatistics(), today=TODAY)
    assert [e.author_account_id for e in run.entries] == ["x"]
    assert jira.searched[-1] == "project = ABC"


def test_default_today_comes_from_configured_timezone(make_api, jira, settings):
    # UTC+14: its calendar day is ahead of UTC for most of every day
    cfg = replace(settings, timezone="Pacific/Kiritimati")
    local_today = datetime.now(pytz.timezone("Pacific/Kiritimati")).date()
    svc, _ = _service(make_api, jira, cfg)
    run = svc.run(Group("X"), DateWindow(local_today, local_today), stats=RunStatistics())
    assert run.window.end == local_today
