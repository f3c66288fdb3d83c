"""Per-issue and per-author hour aggregations."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from worklog_app.core.models import IssueModel, WorkLogModel

WORKLOG_COLUMNS = (
    "issue_key",
    "issue_summary",
    "issue_type",
    "project_key",
    "author",
    "author_email",
    "author_account_id",
    "time_spent",
    "time_spent_seconds",
    "hours",
    "date",
    "started",
    "comment",
)


def worklogs_to_dataframe(
    entries: Iterable[WorkLogModel],
    issues: Iterable[IssueModel] = (),
) -> pd.DataFrame:
    by_key = {i.key: i for i in issues}
    rows = []
    for e in entries:
        issue = by_key.get(e.issue_key)
        rows.append(
            {
                "issue_key": e.issue_key,
                "issue_summary": issue.summary if issue else None,
                "issue_type": issue.issue_type if issue else None,
                "project_key": issue.project_key if issue else None,
                "author": e.author_display_name or e.author_account_id or "Unknown",
                "author_email": e.author_email or "",
                "author_account_id": e.author_account_id,
                "time_spent": e.time_spent,
                "time_spent_seconds": e.time_spent_seconds,
                "hours": round(e.hours, 2),
                "date": e.date.isoformat(),
                "started": e.started.isoformat(),
                "comment": e.comment,
            }
        )
    return pd.DataFrame(rows, columns=list(WORKLOG_COLUMNS))


def aggregate_by_issue(
    df: pd.DataFrame,
    issues: Iterable[IssueModel] = (),
    *,
    include_empty: bool = False,
) -> pd.DataFrame:
    """Total hours per issue, largest first.

    With ``include_empty`` every issue in ``issues`` appears, including those
    with no matching work logs (0 hours).
    """
    issues = list(issues)
    columns = ["issue_key", "summary", "issue_type", "project_key", "status", "assignee", "worklogs", "hours"]
    if df.empty:
        totals = pd.DataFrame(columns=["issue_key", "worklogs", "seconds"])
    else:
        totals = (
            df.groupby("issue_key", sort=False)
            .agg(worklogs=("time_spent_seconds", "count"), seconds=("time_spent_seconds", "sum"))
            .reset_index()
        )
    meta = pd.DataFrame(
        [
            {
                "issue_key": i.key,
                "summary": i.summary,
                "issue_type": i.issue_type,
                "project_key": i.project_key,
                "status": i.status,
                "assignee": i.assignee or "Unassigned",
            }
            for i in issues
        ],
        columns=["issue_key", "summary", "issue_type", "project_key", "status", "assignee"],
    )
    how = "left" if include_empty else "right"
    out = meta.merge(totals, on="issue_key", how=how)
    out["worklogs"] = pd.to_numeric(out["worklogs"], errors="coerce").fillna(0).astype(int)
    out["seconds"] = pd.to_numeric(out["seconds"], errors="coerce").fillna(0)
    out["hours"] = (out["seconds"] / 3600).round(2)
    out = out.sort_values(by=["hours", "issue_key"], ascending=[False, True], kind="stable")
    return out[columns].reset_index(drop=True)


def aggregate_by_author(df: pd.DataFrame) -> pd.DataFrame:
    columns = ["author", "author_email", "issues", "worklogs", "hours"]
    if df.empty:
        return pd.DataFrame(columns=columns)
    agg = (
        df.groupby(["author", "author_email"], dropna=False, sort=False)
        .agg(
            issues=("issue_key", "nunique"),
            worklogs=("time_spent_seconds", "count"),
            seconds=("time_spent_seconds", "sum"),
        )
        .reset_index()
    )
    agg["hours"] = (agg["seconds"] / 3600).round(2)
    agg = agg.sort_values(by=["hours", "author"], ascending=[False, True], kind="stable")
    return agg[columns].reset_index(drop=True)
