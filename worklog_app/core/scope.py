"""Scope resolution (who) and issue discovery (where to look for their work logs)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .config import GROUP_MEMBER_PAGE_SIZE, Settings
from .errors import ConfigurationError, HttpError, NotFoundError
from .jira_client import JiraAPI
from .mappers import account_ids, map_issues
from .models import (
    CurrentUser,
    DateWindow,
    Group,
    IssueModel,
    Query,
    RunStatistics,
    ScopeSelector,
    SpecificUser,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResolvedScope:
    selector: ScopeSelector
    label: str
    # None means "no author predicate" (JQL scope without an author filter)
    account_ids: frozenset[str] | None

    @property
    def is_group(self) -> bool:
        return isinstance(self.selector, Group)

    @property
    def is_query(self) -> bool:
        return isinstance(self.selector, Query)


@dataclass(frozen=True, slots=True)
class DiscoveryStrategy:
    name: str
    jql: str


@dataclass(slots=True)
class Discovery:
    issues: list[IssueModel]
    strategy: str | None
    truncated: bool = False
    attempted: list[str] = field(default_factory=list)


def selector_from_settings(settings: Settings) -> ScopeSelector:
    """Return the single active scope selector; zero or several is an error."""
    active: list[ScopeSelector] = []
    if settings.user_email:
        active.append(SpecificUser(settings.user_email.strip()))
    if settings.use_current_user:
        active.append(CurrentUser())
    if settings.group_name:
        active.append(Group(settings.group_name.strip()))
    if settings.jql:
        active.append(Query(settings.jql.strip()))
    if not active:
        raise ConfigurationError(
            "Please configure one of: user email, current user, group name, or a JQL query"
        )
    if len(active) > 1:
        names = ", ".join(type(s).__name__ for s in active)
        raise ConfigurationError(f"Exactly one scope must be selected, got: {names}")
    return active[0]


# ------------------ Resolution ------------------
def find_user_by_email(api: JiraAPI, email: str, *, stats: RunStatistics) -> dict[str, Any]:
    candidates = api.search_users(email, stats=stats)
    if not candidates:
        raise NotFoundError(f"User not found with email: {email}")
    wanted = email.strip().lower()
    for user in candidates:
        address = user.get("emailAddress")
        if address and address.lower() == wanted:
            return user
    raise NotFoundError(f"No exact match found for email: {email}")


def resolve_scope(
    api: JiraAPI,
    selector: ScopeSelector,
    *,
    stats: RunStatistics,
    settings: Settings | None = None,
) -> ResolvedScope:
    if isinstance(selector, SpecificUser):
        user = find_user_by_email(api, selector.email, stats=stats)
        label = user.get("displayName") or user.get("emailAddress") or selector.email
        logger.info("Found user: %s (%s)", label, user.get("emailAddress"))
        return ResolvedScope(selector, label, account_ids([user]))

    if isinstance(selector, CurrentUser):
        user = api.current_user(stats=stats)
        if not user.get("accountId"):
            raise NotFoundError("Current user response carries no accountId")
        label = user.get("displayName") or user.get("emailAddress") or "CurrentUser"
        logger.info("Current user: %s (%s)", label, user.get("emailAddress"))
        return ResolvedScope(selector, label, account_ids([user]))

    if isinstance(selector, Group):
        page_size = settings.group_member_page_size if settings else GROUP_MEMBER_PAGE_SIZE
        try:
            walk = api.group_members(selector.name, stats=stats, page_size=page_size)
        except NotFoundError as exc:
            raise NotFoundError(
                f"Group not found: {selector.name}", status=exc.status, body=exc.body
            ) from exc
        members = walk.items
        logger.info("Found %d members in group %r", len(members), selector.name)
        for member in members:
            logger.debug(
                "  - %s (%s)",
                member.get("displayName"),
                member.get("emailAddress") or member.get("accountId"),
            )
        return ResolvedScope(selector, selector.name, account_ids(members))

    if isinstance(selector, Query):
        if not selector.jql:
            raise ConfigurationError("JQL query is empty")
        emails = settings.jql_author_emails if settings else ()
        if not emails:
            return ResolvedScope(selector, selector.jql, None)
        authors = [find_user_by_email(api, email, stats=stats) for email in emails]
        logger.info(
            "Restricting JQL scope to %d authors: %s",
            len(authors),
            ", ".join(a.get("displayName") or a.get("emailAddress") or "?" for a in authors),
        )
        return ResolvedScope(selector, selector.jql, account_ids(authors))

    raise ConfigurationError(f"Unsupported scope selector: {selector!r}")


# ------------------ Discovery ------------------
def build_strategies(ids: frozenset[str], window: DateWindow) -> list[DiscoveryStrategy]:
    """Discovery queries ordered from most precise to broadest recall."""
    authors = ", ".join(f'"{i}"' for i in sorted(ids))
    start, end = window.start.isoformat(), window.end.isoformat()
    return [
        DiscoveryStrategy(
            "worklogDate + worklogAuthor",
            f'worklogDate >= "{start}" AND worklogDate <= "{end}" '
            f"AND worklogAuthor in ({authors}) ORDER BY updated DESC",
        ),
        DiscoveryStrategy(
            "worklogAuthor only",
            f"worklogAuthor in ({authors}) ORDER BY updated DESC",
        ),
        DiscoveryStrategy(
            "updated date range",
            f'updated >= "{start}" AND updated <= "{end}" ORDER BY updated DESC',
        ),
    ]


def _search(api: JiraAPI, jql: str, settings: Settings, stats: RunStatistics):
    return api.search_enhanced(
        jql,
        stats=stats,
        fields=settings.search_fields,
        page_size=settings.search_page_size,
        max_items=settings.max_issues,
    )


def discover_issues(
    api: JiraAPI,
    scope: ResolvedScope,
    window: DateWindow,
    *,
    settings: Settings,
    stats: RunStatistics,
) -> Discovery:
    """Find candidate issues for ``scope``.

    JQL scope runs the query as-is. User and group scopes try each strategy
    from :func:`build_strategies` in turn and accept the first non-empty
    result; a strategy rejected as invalid JQL (HTTP 400, e.g. ``worklogDate``
    unsupported on the site) counts as empty.
    """
    if scope.is_query:
        logger.info("Executing JQL query: %s", scope.selector.jql)
        walk = _search(api, scope.selector.jql, settings, stats)
        issues = map_issues(walk.items)
        stats.issues_fetched = len(issues)
        stats.strategy = "jql"
        if walk.truncated:
            stats.truncations += 1
        logger.info("JQL search complete. Found %d issues across %d pages", len(issues), walk.pages)
        return Discovery(issues, "jql", walk.truncated, ["jql"])

    if not scope.account_ids:
        logger.warning("Scope %r resolved to no accounts; nothing to search", scope.label)
        stats.issues_fetched = 0
        return Discovery([], None)

    discovery = Discovery([], None)
    for strategy in build_strategies(scope.account_ids, window):
        discovery.attempted.append(strategy.name)
        logger.info("Trying discovery strategy %r", strategy.name)
        logger.debug("JQL: %s", strategy.jql)
        try:
            walk = _search(api, strategy.jql, settings, stats)
        except HttpError as exc:
            if exc.status != 400:
                raise
            logger.warning("Strategy %r rejected by server: %s", strategy.name, exc)
            continue
        if walk.items:
            discovery.issues = map_issues(walk.items)
            discovery.strategy = strategy.name
            discovery.truncated = walk.truncated
            if walk.truncated:
                stats.truncations += 1
            break
        logger.info("Strategy %r found no issues", strategy.name)

    stats.issues_fetched = len(discovery.issues)
    stats.strategy = discovery.strategy
    logger.info(
        "Found %d issues to check for work logs (strategy: %s)",
        len(discovery.issues),
        discovery.strategy or "none",
    )
    return discovery
