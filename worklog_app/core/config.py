"""Central configuration, constants, tunables, and settings loading."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import date
from pathlib import Path
from typing import Any

import pytz
import yaml

from .errors import ConfigurationError
from .models import Credential

logger = logging.getLogger(__name__)

# =============================================================================
# Jira Connection Settings
# =============================================================================
JIRA_DEFAULT_SERVER = "https://your-jira-instance.atlassian.net"
TIMEZONE = "Asia/Kolkata"
API_PREFIX = "/rest/api/3"

# =============================================================================
# Pagination & Safety Ceilings
# =============================================================================
SEARCH_PAGE_SIZE: int = 500
WORKLOG_PAGE_SIZE: int = 1000
GROUP_MEMBER_PAGE_SIZE: int = 50
MAX_ISSUES_TO_PROCESS: int = 3000
MAX_WORKLOGS_PER_ISSUE: int = 10000

# Fields requested from the issue search endpoint
ISSUE_SEARCH_FIELDS: tuple[str, ...] = (
    "summary",
    "issuetype",
    "status",
    "project",
    "assignee",
)

# =============================================================================
# Retry / Rate Limit Tuning
# =============================================================================
MAX_RETRIES: int = 3
RETRY_BASE_DELAY_SECONDS: float = 2.0
RATE_LIMIT_LOW_WATER: int = 10
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"

# =============================================================================
# Batch Processing (group scope only)
# =============================================================================
ENABLE_BATCH_PROCESSING: bool = True
BATCH_SIZE: int = 200
BATCH_DELAY_SECONDS: float = 1.0

# =============================================================================
# Output Defaults
# =============================================================================
DEFAULT_DATE_RANGE_DAYS: int = 30
REPORTS_FOLDER = "generated-reports"

# Environment variable names accepted for credentials (first hit wins)
ENV_SERVER = ("JIRA_SERVER",)
ENV_EMAIL = ("JIRA_EMAIL",)
ENV_TOKEN = ("JIRA_API_TOKEN", "JIRA_TOKEN")

# YAML sections are flattened into Settings fields
_YAML_SECTIONS = ("jira", "scope", "window", "fetch", "output")


@dataclass(slots=True)
class Settings:
    server: str = JIRA_DEFAULT_SERVER
    email: str = "<email>"
    api_token: str = "<api_token>"
    timezone: str = TIMEZONE

    # Scope: exactly one must be active
    user_email: str | None = None
    use_current_user: bool = False
    group_name: str | None = None
    jql: str | None = None
    # Optional author filter for JQL scope; empty keeps every author
    jql_author_emails: tuple[str, ...] = ()

    # Window: explicit dates win over the relative shorthand
    start_date: str | None = None
    end_date: str | None = None
    days: int = DEFAULT_DATE_RANGE_DAYS

    search_page_size: int = SEARCH_PAGE_SIZE
    worklog_page_size: int = WORKLOG_PAGE_SIZE
    group_member_page_size: int = GROUP_MEMBER_PAGE_SIZE
    max_issues: int = MAX_ISSUES_TO_PROCESS
    max_worklogs_per_issue: int = MAX_WORKLOGS_PER_ISSUE
    search_fields: tuple[str, ...] = ISSUE_SEARCH_FIELDS

    max_retries: int = MAX_RETRIES
    retry_base_delay: float = RETRY_BASE_DELAY_SECONDS
    rate_limit_low_water: int = RATE_LIMIT_LOW_WATER

    enable_batching: bool = ENABLE_BATCH_PROCESSING
    batch_size: int = BATCH_SIZE
    batch_delay: float = BATCH_DELAY_SECONDS

    reports_folder: str = REPORTS_FOLDER
    export_excel: bool = True
    export_json: bool = False
    console_report: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def credential(self) -> Credential:
        return Credential(email=self.email, api_token=self.api_token)

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


def _flatten_yaml(data: Mapping[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if key in _YAML_SECTIONS and isinstance(value, Mapping):
            flat.update(value)
        else:
            flat[key] = value
    return flat


def _coerce(name: str, value: Any, default: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if isinstance(default, int) and not isinstance(default, bool):
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Setting '{name}' must be an integer, got {value!r}") from exc
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Setting '{name}' must be a number, got {value!r}") from exc
    if isinstance(default, tuple):
        if isinstance(value, str):
            return tuple(v.strip() for v in value.split(",") if v.strip())
        return tuple(value)
    return value


def apply_overrides(settings: Settings, overrides: Mapping[str, Any]) -> Settings:
    """Return a copy of ``settings`` with known, non-None keys replaced.

    Unknown keys are kept in ``settings.extra`` so a typo in a YAML file is
    visible in debug output instead of silently vanishing.
    """
    known = {f.name: getattr(settings, f.name) for f in fields(Settings)}
    changes: dict[str, Any] = {}
    extra = dict(settings.extra)
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in known or key == "extra":
            extra[key] = value
            continue
        changes[key] = _coerce(key, value, known[key])
    if extra.keys() - settings.extra.keys():
        logger.debug("Ignoring unknown settings: %s", sorted(extra.keys() - settings.extra.keys()))
    return replace(settings, **changes, extra=extra)


def _first_env(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


def load_settings(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Build Settings from defaults, an optional YAML file, env vars and overrides.

    Parameters
    ----------
    path : str | Path | None
        YAML file. Keys may sit at top level or under ``jira``/``scope``/
        ``window``/``fetch``/``output`` sections.
    env : Mapping | None
        Environment used for ``JIRA_SERVER``/``JIRA_EMAIL``/``JIRA_API_TOKEN``.
        Defaults to ``os.environ``.
    overrides : Mapping | None
        Highest-precedence values (the CLI passes its flags here).
    """
    settings = Settings()
    if path is not None:
        yaml_path = Path(path)
        if not yaml_path.exists():
            raise ConfigurationError(f"Config file not found: {yaml_path}")
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {yaml_path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Config file {yaml_path} must contain a mapping")
        settings = apply_overrides(settings, _flatten_yaml(data))

    env = os.environ if env is None else env
    settings = apply_overrides(
        settings,
        {
            "server": _first_env(env, ENV_SERVER),
            "email": _first_env(env, ENV_EMAIL),
            "api_token": _first_env(env, ENV_TOKEN),
        },
    )
    if overrides:
        settings = apply_overrides(settings, overrides)
    return settings


def validate_settings(settings: Settings) -> Settings:
    """Reject settings that cannot possibly work before any network call."""
    if not settings.server or "your-jira-instance" in settings.server:
        raise ConfigurationError("Please configure the Jira server URL (JIRA_SERVER)")
    if settings.credential.is_placeholder():
        raise ConfigurationError(
            "Please configure a real Jira email and API token (JIRA_EMAIL / JIRA_API_TOKEN)"
        )
    try:
        pytz.timezone(settings.timezone)
    except pytz.UnknownTimeZoneError as exc:
        raise ConfigurationError(f"Unknown timezone: {settings.timezone}") from exc
    for name in (
        "search_page_size",
        "worklog_page_size",
        "group_member_page_size",
        "max_issues",
        "max_worklogs_per_issue",
        "batch_size",
    ):
        if getattr(settings, name) <= 0:
            raise ConfigurationError(f"Setting '{name}' must be positive")
    if settings.max_retries < 0:
        raise ConfigurationError("Setting 'max_retries' must be >= 0")
    if settings.jql_author_emails and not settings.jql:
        raise ConfigurationError("Author emails filter only applies to a JQL query scope")
    return settings
