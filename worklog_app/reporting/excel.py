"""Excel workbook export."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from .report import WorklogReport

logger = logging.getLogger(__name__)

REPORT_SHEET = "Report"
AUTHOR_SHEET = "By Author"
DETAIL_SHEET = "Work logs"

# Character widths per column, in sheet order
_WIDTHS = {
    REPORT_SHEET: [22, 50, 14, 12, 16, 22, 10, 12],
    AUTHOR_SHEET: [25, 32, 10, 10, 12],
    DETAIL_SHEET: [20, 15, 50, 26, 26, 20, 12, 60],
}


def _metadata_rows(report: WorklogReport) -> list[list]:
    s = report.summary
    return [
        ["From", s["dateRange"]["start"], "To", s["dateRange"]["end"]],
        ["Users & Groups" if s["jqlQuery"] is None else "JQL", report.scope_label],
        ["Time Zone", report.timezone],
        ["Generated on", report.generated_at.isoformat()],
        ["Report Time Format", "Hours"],
        ["Work logs Time Format", "Hours"],
        ["Total Hours", s["totalTimeHours"]],
    ]


def issue_table(report: WorklogReport) -> pd.DataFrame:
    return report.by_issue.rename(
        columns={
            "issue_key": "Issue",
            "summary": "Summary",
            "issue_type": "Type",
            "project_key": "Project",
            "status": "Status",
            "assignee": "Assignee",
            "worklogs": "Work logs",
            "hours": "Total Issue",
        }
    )


def author_table(report: WorklogReport) -> pd.DataFrame:
    return report.by_author.rename(
        columns={
            "author": "Author",
            "author_email": "Email",
            "issues": "Issues",
            "worklogs": "Work logs",
            "hours": "Total Hours",
        }
    )


def detail_table(report: WorklogReport) -> pd.DataFrame:
    """Work-log rows ordered by author, then start time."""
    df = report.worklogs
    out = pd.DataFrame(
        {
            "Author": df["author"],
            "Issue": df["issue_key"],
            "Issue Summary": df["issue_summary"],
            "Work log added": df["started"],
            "Work log date": df["date"],
            "Work log Time zone": report.timezone,
            "Time spent": df["hours"],
            "Work log comment": df["comment"].fillna(""),
        }
    )
    # ISO strings in a single zone sort chronologically
    return out.sort_values(["Author", "Work log added"], kind="stable").reset_index(drop=True)


def _clean(df: pd.DataFrame) -> pd.DataFrame:
    """Strip control characters openpyxl refuses to store (e.g. pasted ANSI escapes)."""
    out = df.copy()
    for col in out.columns:
        out[col] = out[col].map(lambda v: ILLEGAL_CHARACTERS_RE.sub("", v) if isinstance(v, str) else v)
    return out


def _set_widths(ws, widths: list[int]) -> None:
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width


def write_excel(report: WorklogReport, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    meta = _clean(pd.DataFrame(_metadata_rows(report)))
    issues = _clean(issue_table(report))
    authors = _clean(author_table(report))
    detail = _clean(detail_table(report))

    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        meta.to_excel(writer, sheet_name=REPORT_SHEET, index=False, header=False)
        issues.to_excel(writer, sheet_name=REPORT_SHEET, index=False, startrow=len(meta) + 1)
        authors.to_excel(writer, sheet_name=AUTHOR_SHEET, index=False)
        detail.to_excel(writer, sheet_name=DETAIL_SHEET, index=False)

        for name, widths in _WIDTHS.items():
            ws = writer.sheets[name]
            _set_widths(ws, widths)
            if name != REPORT_SHEET:
                ws.freeze_panes = "A2"
                ws.auto_filter.ref = f"A1:{get_column_letter(ws.max_column)}1"

    logger.info("Excel report saved to: %s", out)
    logger.info('  - Sheet "%s": %d issues', REPORT_SHEET, len(issues))
    logger.info('  - Sheet "%s": %d authors', AUTHOR_SHEET, len(authors))
    logger.info('  - Sheet "%s": %d entries', DETAIL_SHEET, len(detail))
    return out
