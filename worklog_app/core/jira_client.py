"""Jira API client wrapper (REST v3 transport with retry/backoff + paginated endpoints)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any
from urllib.parse import quote

import requests

from .config import (
    API_PREFIX,
    GROUP_MEMBER_PAGE_SIZE,
    ISSUE_SEARCH_FIELDS,
    MAX_RETRIES,
    RATE_LIMIT_LOW_WATER,
    RATE_LIMIT_REMAINING_HEADER,
    RETRY_BASE_DELAY_SECONDS,
    SEARCH_PAGE_SIZE,
    WORKLOG_PAGE_SIZE,
    Settings,
)
from .errors import (
    AuthenticationError,
    HttpError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
    TransportError,
)
from .models import Credential, RunStatistics
from .pagination import PageWalk, walk_cursor, walk_offset

logger = logging.getLogger(__name__)

_BODY_PREVIEW = 200


def _retry_after_seconds(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        # HTTP-date form is not used by Jira Cloud; fall back to backoff
        return None
    return max(0.0, seconds)


class JiraAPI:
    def __init__(
        self,
        server: str,
        email: str,
        token: str,
        *,
        max_retries: int = MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY_SECONDS,
        rate_limit_low_water: int = RATE_LIMIT_LOW_WATER,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.server = server.rstrip("/")
        self.credential = Credential(email=email, api_token=token)
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.rate_limit_low_water = rate_limit_low_water
        self.session = session if session is not None else requests.Session()
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> JiraAPI:
        return cls(
            settings.server,
            settings.email,
            settings.api_token,
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
            rate_limit_low_water=settings.rate_limit_low_water,
            **kwargs,
        )

    # ------------------ Transport ------------------
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self.credential.authorization_header(),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _backoff(self, attempt: int) -> float:
        return self.retry_base_delay * (2**attempt)

    def _check_quota(self, resp) -> None:
        remaining = resp.headers.get(RATE_LIMIT_REMAINING_HEADER)
        if remaining is None:
            return
        try:
            left = int(remaining)
        except (TypeError, ValueError):
            return
        if left < self.rate_limit_low_water:
            logger.warning("Low rate limit: %s requests remaining", left)

    def request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        stats: RunStatistics,
    ) -> Any:
        """GET ``path`` and return the decoded JSON body.

        429 responses and transient network failures are retried with
        exponential backoff (``Retry-After`` wins when present) up to
        ``max_retries`` times. Every attempt counts as one API call.
        """
        url = f"{self.server}{path}"
        attempt = 0
        while True:
            stats.api_calls += 1
            try:
                resp = self.session.get(url, params=params, headers=self._headers())
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt >= self.max_retries:
                    raise TransientNetworkError(
                        f"Network error on {path} after {self.max_retries} retries: {exc}"
                    ) from exc
                wait = self._backoff(attempt)
                attempt += 1
                logger.warning(
                    "Network error on %s. Retrying after %.1fs (attempt %d/%d)",
                    path,
                    wait,
                    attempt,
                    self.max_retries,
                )
                self.sleep(wait)
                continue
            except requests.RequestException as exc:
                raise TransportError(f"Request to {path} failed: {exc}") from exc

            self._check_quota(resp)

            if resp.status_code == 429:
                if attempt >= self.max_retries:
                    raise RateLimitError(
                        f"Rate limit exceeded after {self.max_retries} retries",
                        status=429,
                        body=resp.text[:_BODY_PREVIEW],
                    )
                wait = _retry_after_seconds(resp.headers.get("Retry-After"))
                if wait is None:
                    wait = self._backoff(attempt)
                attempt += 1
                logger.warning(
                    "Rate limit hit. Retrying after %.1fs (attempt %d/%d)",
                    wait,
                    attempt,
                    self.max_retries,
                )
                self.sleep(wait)
                continue

            if resp.status_code >= 400:
                body = resp.text[:_BODY_PREVIEW]
                message = f"Jira API error ({resp.status_code}) on {path}: {body}"
                if resp.status_code == 401:
                    raise AuthenticationError(message, status=401, body=body)
                if resp.status_code == 404:
                    raise NotFoundError(message, status=404, body=body)
                raise HttpError(message, status=resp.status_code, body=body)

            if not resp.content:
                return {}
            try:
                return resp.json()
            except ValueError as exc:
                raise HttpError(
                    f"Invalid JSON from {path}", status=resp.status_code, body=resp.text[:_BODY_PREVIEW]
                ) from exc

    # ------------------ Endpoints ------------------
    def current_user(self, *, stats: RunStatistics) -> dict[str, Any]:
        return self.request(f"{API_PREFIX}/myself", stats=stats)

    def search_users(self, query: str, *, stats: RunStatistics) -> list[dict[str, Any]]:
        data = self.request(f"{API_PREFIX}/user/search", {"query": query}, stats=stats)
        return data if isinstance(data, list) else []

    def group_members(
        self,
        group_name: str,
        *,
        stats: RunStatistics,
        page_size: int = GROUP_MEMBER_PAGE_SIZE,
    ) -> PageWalk:
        def fetch(offset: int, size: int) -> dict[str, Any]:
            return self.request(
                f"{API_PREFIX}/group/member",
                {"groupname": group_name, "startAt": offset, "maxResults": size},
                stats=stats,
            )

        return walk_offset(fetch, page_size=page_size, items_key="values", label=f"group {group_name!r}")

    def search_enhanced(
        self,
        jql: str,
        *,
        stats: RunStatistics,
        fields: Sequence[str] | None = ISSUE_SEARCH_FIELDS,
        page_size: int = SEARCH_PAGE_SIZE,
        max_items: int | None = None,
    ) -> PageWalk:
        params: dict[str, Any] = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)

        def fetch(token: str | None) -> dict[str, Any]:
            qp = dict(params)
            if token:
                qp["nextPageToken"] = token
            return self.request(f"{API_PREFIX}/search/jql", qp, stats=stats)

        return walk_cursor(fetch, items_key="issues", max_items=max_items, label="issue search")

    def issue_worklogs(
        self,
        issue_key: str,
        *,
        stats: RunStatistics,
        page_size: int = WORKLOG_PAGE_SIZE,
        max_items: int | None = None,
    ) -> PageWalk:
        path = f"{API_PREFIX}/issue/{quote(issue_key, safe='')}/worklog"

        def fetch(offset: int, size: int) -> dict[str, Any]:
            return self.request(path, {"startAt": offset, "maxResults": size}, stats=stats)

        return walk_offset(
            fetch,
            page_size=page_size,
            items_key="worklogs",
            max_items=max_items,
            label=f"{issue_key} worklogs",
        )
