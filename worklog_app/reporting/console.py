"""Plain-text console renditions of the report and the execution summary."""

from __future__ import annotations

from collections.abc import Callable

from worklog_app.core.models import RunStatistics

from .report import WorklogReport

_RULE = "=" * 80
_COMMENT_WIDTH = 80


def _clip(text: str, width: int = _COMMENT_WIDTH) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[:width] + "..."


def format_report(report: WorklogReport) -> list[str]:
    s = report.summary
    lines = [
        _RULE,
        "JIRA WORK LOG REPORT",
        _RULE,
        "",
        "SUMMARY:",
        f"   Scope: {report.scope_label}",
        f"   Date Range: {s['dateRange']['start']} to {s['dateRange']['end']}",
        f"   Total Work Logs: {s['totalWorkLogs']}",
        f"   Total Time Logged: {s['totalTimeFormatted']} ({s['totalTimeHours']} hours)",
        f"   Unique Issues: {s['issueCount']}",
        f"   Team Members: {s['authorCount']}",
        "",
        "DETAILED WORK LOGS:",
        "-" * 80,
    ]
    df = report.worklogs
    for issue_key, group in df.groupby("issue_key", sort=False):
        first = group.iloc[0]
        hours = group["time_spent_seconds"].sum() / 3600
        lines.append("")
        lines.append(f"{issue_key} - {first['issue_summary']}")
        lines.append(f"   Type: {first['issue_type']} | Project: {first['project_key']} | Total: {hours:.2f}h")
        for row in group.itertuples(index=False):
            spent = row.time_spent or f"{row.hours}h"
            lines.append(f"   |- {row.author} logged {spent} on {row.date}")
            if row.comment:
                lines.append(f"   |  Comment: {_clip(row.comment)}")
    lines.append("")
    lines.append(_RULE)
    return lines


def format_execution_summary(stats: RunStatistics, *, partial: bool = False) -> list[str]:
    elapsed = stats.elapsed_seconds
    per_call = elapsed / stats.api_calls if stats.api_calls else 0.0
    rate = stats.match_rate
    lines = [
        "",
        _RULE,
        "EXECUTION SUMMARY (partial)" if partial else "EXECUTION SUMMARY",
        _RULE,
        "",
        "Performance:",
        f"   Execution time: {elapsed:.2f} seconds",
        f"   Total API calls: {stats.api_calls}",
        f"   Average time per API call: {per_call:.2f}s",
        "",
        "Data Fetched:",
        f"   Discovery strategy: {stats.strategy or 'n/a'}",
        f"   Issues fetched: {stats.issues_fetched}",
        f"   Work logs fetched: {stats.worklogs_fetched}",
        f"   Work logs matched filters: {stats.worklogs_matched}",
        f"   Match rate: {rate * 100:.1f}%" if rate is not None else "   Match rate: n/a",
        "",
        "Time Logged:",
        f"   Total hours: {stats.total_hours:.2f}h",
        f"   Average per issue: {stats.hours_per_issue:.2f}h",
        f"   Average per work log: {stats.hours_per_worklog:.2f}h",
    ]
    if stats.truncations:
        lines.append(f"   Result sets truncated at safety ceilings: {stats.truncations}")
    if stats.failed_issues:
        lines.append(f"   Issues skipped after errors: {', '.join(stats.failed_issues)}")
    lines.append(_RULE)
    return lines


def print_report(report: WorklogReport, out: Callable[[str], None] = print) -> None:
    for line in format_report(report):
        out(line)


def print_execution_summary(
    stats: RunStatistics,
    *,
    partial: bool = False,
    out: Callable[[str], None] = print,
) -> None:
    for line in format_execution_summary(stats, partial=partial):
        out(line)
