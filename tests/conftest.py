"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import worklog_app` works.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from worklog_app.core.config import Settings  # noqa: E402
from worklog_app.core.jira_client import JiraAPI  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        server="https://example.atlassian.net",
        email="dev@example.com",
        api_token="token-123",
        timezone="UTC",
        reports_folder="reports",
    )


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_api(sleeps):
    """Factory for a JiraAPI bound to a fake session; waits land in ``sleeps``."""

    def _make(session, **kwargs) -> JiraAPI:
        kwargs.setdefault("sleep", sleeps.append)
        return JiraAPI(
            "https://example.atlassian.net",
            "dev@example.com",
            "token-123",
            session=session,
            **kwargs,
        )

    return _make
