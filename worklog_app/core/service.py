"""WorklogService: orchestrates scope resolution, discovery, batched fetch and reconciliation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from .config import Settings
from .errors import FATAL_ERRORS, HttpError, PaginationError, TransportError
from .jira_client import JiraAPI
from .mappers import map_worklogs
from .models import DateWindow, IssueModel, RunStatistics, ScopeSelector, WorkLogModel
from .reconcile import filter_worklogs
from .scope import Discovery, ResolvedScope, discover_issues, resolve_scope

ProgressCallback = Callable[[str, int | None, int | None], None]

# Errors that skip a single issue instead of aborting the run
_ISSUE_ERRORS = (HttpError, PaginationError, TransportError)


@dataclass(slots=True)
class WorklogRun:
    scope: ResolvedScope
    window: DateWindow
    discovery: Discovery
    entries: list[WorkLogModel] = field(default_factory=list)

    @property
    def issues(self) -> list[IssueModel]:
        return self.discovery.issues


def partition(items: Sequence, size: int) -> list[Sequence]:
    """Split ``items`` into contiguous chunks of ``size`` (the last may be shorter)."""
    if size <= 0:
        raise ValueError("batch size must be positive")
    return [items[i : i + size] for i in range(0, len(items), size)]


class WorklogService:
    def __init__(
        self,
        api: JiraAPI,
        settings: Settings,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api = api
        self.settings = settings
        self._tz = settings.tz
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    # ------------------ Pipeline ------------------
    def run(
        self,
        selector: ScopeSelector,
        window: DateWindow,
        *,
        stats: RunStatistics,
        today: date | None = None,
        progress: ProgressCallback | None = None,
    ) -> WorklogRun:
        """Resolve ``selector``, discover issues and collect reconciled work logs.

        ``stats`` is filled in place so the caller still holds the partial
        counters when a fatal error propagates.
        """
        window.validate(today or datetime.now(self._tz).date())
        if progress:
            progress("Resolving scope", None, None)
        scope = resolve_scope(self.api, selector, stats=stats, settings=self.settings)
        if progress:
            progress("Searching issues", None, None)
        discovery = discover_issues(self.api, scope, window, settings=self.settings, stats=stats)
        run = WorklogRun(scope=scope, window=window, discovery=discovery)
        if not discovery.issues:
            self.logger.warning("No issues found for %s", scope.label)
            return run
        run.entries = self.process_issues(discovery.issues, scope, window, stats=stats, progress=progress)
        self.logger.info(
            "Work logs fetched: %d, matched: %d", stats.worklogs_fetched, stats.worklogs_matched
        )
        return run

    def use_batching(self, scope: ResolvedScope, issue_count: int) -> bool:
        return scope.is_group and self.settings.enable_batching and issue_count > self.settings.batch_size

    def process_issues(
        self,
        issues: Sequence[IssueModel],
        scope: ResolvedScope,
        window: DateWindow,
        *,
        stats: RunStatistics,
        progress: ProgressCallback | None = None,
    ) -> list[WorkLogModel]:
        total = len(issues)
        if not self.use_batching(scope, total):
            self.logger.info("Processing %d issues sequentially", total)
            return self._process_batch(issues, scope, window, stats, progress=progress, offset=0, total=total)

        batches = partition(issues, self.settings.batch_size)
        self.logger.info(
            "Using batch processing for %d issues (%d batches of up to %d)",
            total,
            len(batches),
            self.settings.batch_size,
        )
        entries: list[WorkLogModel] = []
        done = 0
        for number, batch in enumerate(batches, start=1):
            self.logger.info(
                "Processing batch %d/%d (issues %d-%d)", number, len(batches), done + 1, done + len(batch)
            )
            batch_stats = RunStatistics()
            try:
                entries.extend(
                    self._process_batch(
                        batch, scope, window, batch_stats, progress=progress, offset=done, total=total
                    )
                )
            finally:
                stats.merge(batch_stats)
            done += len(batch)
            self.logger.info("Batch %d complete. Progress: %d/%d issues", number, done, total)
            if number < len(batches):
                self.logger.debug("Waiting %.1fs before next batch", self.settings.batch_delay)
                self.sleep(self.settings.batch_delay)
        return entries

    def _process_batch(
        self,
        issues: Sequence[IssueModel],
        scope: ResolvedScope,
        window: DateWindow,
        stats: RunStatistics,
        *,
        progress: ProgressCallback | None,
        offset: int,
        total: int,
    ) -> list[WorkLogModel]:
        entries: list[WorkLogModel] = []
        for idx, issue in enumerate(issues, start=offset + 1):
            if progress:
                progress(f"Fetching work logs for {issue.key}", idx, total)
            try:
                matched = self.fetch_issue_worklogs(issue, scope, window, stats=stats)
            except FATAL_ERRORS:
                raise
            except _ISSUE_ERRORS as exc:
                self.logger.error("Error processing %s: %s", issue.key, exc)
                stats.failed_issues.append(issue.key)
                continue
            entries.extend(matched)
        return entries

    def fetch_issue_worklogs(
        self,
        issue: IssueModel,
        scope: ResolvedScope,
        window: DateWindow,
        *,
        stats: RunStatistics,
    ) -> list[WorkLogModel]:
        """Fetch every worklog page for ``issue`` and keep the reconciled ones."""
        walk = self.api.issue_worklogs(
            issue.key,
            stats=stats,
            page_size=self.settings.worklog_page_size,
            max_items=self.settings.max_worklogs_per_issue,
        )
        if walk.truncated:
            stats.truncations += 1
        raw_logs = walk.items
        stats.worklogs_fetched += len(raw_logs)
        entries = map_worklogs(raw_logs, issue.key, self._tz)
        matched = filter_worklogs(entries, window, scope.account_ids, self._tz)
        stats.worklogs_matched += len(matched)
        stats.total_time_seconds += sum(e.time_spent_seconds for e in matched)
        if raw_logs and not matched:
            self.logger.debug("%s: %d work logs, 0 matched filters", issue.key, len(raw_logs))
        elif matched:
            self.logger.info("%s: %d/%d work logs matched", issue.key, len(matched), len(raw_logs))
        return matched
