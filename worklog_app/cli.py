"""Command-line entry point: fetch work logs for a user, a group or a JQL query."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any

from openpyxl.utils.exceptions import IllegalCharacterError

from worklog_app import __version__
from worklog_app.core.config import Settings, load_settings, validate_settings
from worklog_app.core.errors import ConfigurationError, WorklogError
from worklog_app.core.jira_client import JiraAPI
from worklog_app.core.models import DateWindow, Query, RunStatistics, ScopeSelector
from worklog_app.core.scope import selector_from_settings
from worklog_app.core.service import WorklogService
from worklog_app.reporting.console import print_execution_summary, print_report
from worklog_app.reporting.excel import write_excel
from worklog_app.reporting.filenames import report_basename
from worklog_app.reporting.prompts import prompt_date_range, prompt_query
from worklog_app.reporting.report import build_report, write_json

logger = logging.getLogger("worklog_app")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worklog-fetcher",
        description="Fetch Jira work logs for a user, a group or a JQL query and export a report.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", help="Path to a YAML settings file.")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--user", metavar="EMAIL", help="Work logs of the user with this email.")
    scope.add_argument(
        "--current-user",
        action="store_true",
        help="Work logs of the authenticated user.",
    )
    scope.add_argument("--group", metavar="NAME", help="Work logs of every member of this group.")
    scope.add_argument("--jql", metavar="QUERY", help="Work logs on the issues matched by this query.")
    parser.add_argument(
        "--author",
        metavar="EMAIL",
        action="append",
        help="With --jql, keep only work logs by this user (repeatable).",
    )

    parser.add_argument("--start", metavar="YYYY-MM-DD", help="First day of the window.")
    parser.add_argument("--end", metavar="YYYY-MM-DD", help="Last day of the window (inclusive).")
    parser.add_argument(
        "--days",
        type=int,
        help="Window of the last N days up to today (ignored when --start/--end are given).",
    )
    parser.add_argument(
        "--interactive",
        "-i",
        action="store_true",
        help="Prompt for the date range (and the JQL query in JQL mode).",
    )
    parser.add_argument("--output-dir", "-o", help="Folder for generated reports.")
    parser.add_argument("--json", action="store_true", help="Also write the report as JSON.")
    parser.add_argument("--no-excel", action="store_true", help="Skip the Excel workbook.")
    parser.add_argument("--quiet", "-q", action="store_true", help="Do not print the detailed report.")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More logging (-vv for debug).")
    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # PartialDataWarning goes through warnings.warn; route it to the log
    logging.captureWarnings(True)


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "start_date": args.start,
        "end_date": args.end,
        "days": args.days,
        "reports_folder": args.output_dir,
        "jql_author_emails": args.author,
    }
    scope = {
        "user_email": args.user,
        "use_current_user": args.current_user or None,
        "group_name": args.group,
        "jql": args.jql,
    }
    if any(v is not None for v in scope.values()):
        # A scope flag replaces whatever scope the config file selected
        overrides.update({"user_email": "", "use_current_user": False, "group_name": "", "jql": ""})
        overrides.update({k: v for k, v in scope.items() if v is not None})
    if args.json:
        overrides["export_json"] = True
    if args.no_excel:
        overrides["export_excel"] = False
    if args.quiet:
        overrides["console_report"] = False
    return overrides


def window_from_settings(settings: Settings, *, today: date | None = None) -> DateWindow:
    """Explicit start/end win; a missing side is filled from ``settings.days``."""
    today = today or date.today()
    if not (settings.start_date or settings.end_date):
        return DateWindow.last_days(settings.days, today=today)
    end = settings.end_date or today.isoformat()
    if settings.start_date:
        return DateWindow.parse(settings.start_date, end)
    parsed_end = DateWindow.parse(end, end).end
    return DateWindow.last_days(settings.days, today=parsed_end)


def export_reports(report, scope, settings: Settings) -> list[Path]:
    folder = Path(settings.reports_folder)
    base = report_basename(scope, report.generated_at)
    written = []
    if settings.export_excel:
        written.append(write_excel(report, folder / f"{base}.xlsx"))
    if settings.export_json:
        written.append(write_json(report, folder / f"{base}.json"))
    return written


def log_progress(message: str, done: int | None, total: int | None) -> None:
    if total:
        logger.info("[%d/%d] %s", done, total, message)
    else:
        logger.info("%s", message)


def main(
    argv: Sequence[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    api_factory: Callable[[Settings], JiraAPI] = JiraAPI.from_settings,
    input_fn: Callable[[str], str] = input,
    today: date | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(args.config, env=env, overrides=overrides_from_args(args))
        validate_settings(settings)
        today = today or datetime.now(settings.tz).date()
        selector: ScopeSelector = selector_from_settings(settings)
        if args.interactive:
            if isinstance(selector, Query):
                selector = Query(prompt_query(selector.jql, input_fn))
            window = prompt_date_range(input_fn, today=today, default_days=settings.days)
        else:
            window = window_from_settings(settings, today=today)
        window.validate(today)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    logger.info("Date range: %s to %s (%s)", window.start, window.end, settings.timezone)
    stats = RunStatistics()
    service = WorklogService(api_factory(settings), settings)
    try:
        run = service.run(selector, window, stats=stats, today=today, progress=log_progress)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    except WorklogError as exc:
        print(f"Failed to fetch work logs: {exc}", file=sys.stderr)
        print_execution_summary(stats.finish(), partial=True)
        return 1
    stats.finish()

    report = build_report(run, settings)
    if settings.console_report:
        print_report(report)
    try:
        written = export_reports(report, run.scope, settings)
    except (OSError, ValueError, IllegalCharacterError) as exc:
        print(f"Failed to write report: {exc}", file=sys.stderr)
        print_execution_summary(stats)
        return 1
    for path in written:
        print(f"Report saved to: {path}")
    print_execution_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
