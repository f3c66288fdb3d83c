"""Assemble the work-log report (summary, aggregates, detail) and persist it as JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
import pytz

from worklog_app.analytics.aggregations import (
    aggregate_by_author,
    aggregate_by_issue,
    worklogs_to_dataframe,
)
from worklog_app.core.config import Settings
from worklog_app.core.service import WorklogRun

logger = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    """``5400`` -> ``"1h 30m"``."""
    seconds = int(seconds)
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


@dataclass(slots=True)
class WorklogReport:
    scope_kind: str
    scope_label: str
    timezone: str
    generated_at: datetime
    summary: dict[str, Any]
    worklogs: pd.DataFrame
    by_issue: pd.DataFrame
    by_author: pd.DataFrame

    def entry_records(self) -> list[dict[str, Any]]:
        """Per-entry records in the camelCase shape of the JSON document."""
        out = []
        for row in self.worklogs.to_dict(orient="records"):
            out.append(
                {
                    "issueKey": row["issue_key"],
                    "issueSummary": row["issue_summary"],
                    "issueType": row["issue_type"],
                    "projectKey": row["project_key"],
                    "author": row["author"],
                    "authorEmail": row["author_email"],
                    "authorAccountId": row["author_account_id"],
                    "timeSpent": row["time_spent"],
                    "timeSpentSeconds": int(row["time_spent_seconds"]),
                    "timeSpentHours": float(row["hours"]),
                    "date": row["date"],
                    "started": row["started"],
                    "comment": row["comment"],
                }
            )
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "byIssue": [
                {
                    "issueKey": r["issue_key"],
                    "summary": r["summary"],
                    "type": r["issue_type"],
                    "project": r["project_key"],
                    "status": r["status"],
                    "assignee": r["assignee"],
                    "worklogs": int(r["worklogs"]),
                    "totalHours": float(r["hours"]),
                }
                for r in self.by_issue.to_dict(orient="records")
            ],
            "byAuthor": [
                {
                    "author": r["author"],
                    "authorEmail": r["author_email"],
                    "issues": int(r["issues"]),
                    "worklogs": int(r["worklogs"]),
                    "totalHours": float(r["hours"]),
                }
                for r in self.by_author.to_dict(orient="records")
            ],
            "workLogs": self.entry_records(),
        }


def build_report(run: WorklogRun, settings: Settings, *, now: datetime | None = None) -> WorklogReport:
    tz = settings.tz
    generated_at = now or datetime.now(pytz.UTC).astimezone(tz)
    df = worklogs_to_dataframe(run.entries, run.issues)
    by_issue = aggregate_by_issue(df, run.issues, include_empty=run.scope.is_query)
    by_author = aggregate_by_author(df)

    total_seconds = int(df["time_spent_seconds"].sum()) if not df.empty else 0
    unique_issues = list(dict.fromkeys(df["issue_key"])) if not df.empty else []
    unique_authors = list(dict.fromkeys(df["author"])) if not df.empty else []
    unique_projects = [p for p in dict.fromkeys(df["project_key"]) if p] if not df.empty else []
    dates = sorted(df["date"]) if not df.empty else []

    summary: dict[str, Any] = {
        "scope": type(run.scope.selector).__name__,
        "scopeLabel": run.scope.label,
        "jqlQuery": run.scope.selector.jql if run.scope.is_query else None,
        "dateRange": {"start": run.window.start.isoformat(), "end": run.window.end.isoformat()},
        "observedDateRange": {
            "earliest": dates[0] if dates else None,
            "latest": dates[-1] if dates else None,
        },
        "timezone": settings.timezone,
        "generatedAt": generated_at.isoformat(),
        "discoveryStrategy": run.discovery.strategy,
        "totalWorkLogs": len(df),
        "totalTimeSeconds": total_seconds,
        "totalTimeFormatted": format_duration(total_seconds),
        "totalTimeHours": round(total_seconds / 3600, 2),
        "uniqueIssues": unique_issues,
        "uniqueAuthors": unique_authors,
        "uniqueProjects": unique_projects,
        "issueCount": len(unique_issues),
        "authorCount": len(unique_authors),
        "projectCount": len(unique_projects),
        "totalIssuesFound": len(run.issues),
        "issuesWithWorklogs": len(unique_issues),
        "issuesWithoutWorklogs": len(run.issues) - len(unique_issues),
        "truncated": run.discovery.truncated,
    }
    return WorklogReport(
        scope_kind=summary["scope"],
        scope_label=run.scope.label,
        timezone=settings.timezone,
        generated_at=generated_at,
        summary=summary,
        worklogs=df,
        by_issue=by_issue,
        by_author=by_author,
    )


def write_json(report: WorklogReport, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str))
    logger.info("JSON report saved to: %s", out)
    return out
