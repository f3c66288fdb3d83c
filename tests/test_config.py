from dataclasses import replace
from datetime import date

import pytest

from worklog_app.core.config import Settings, apply_overrides, load_settings, validate_settings
from worklog_app.core.errors import ConfigurationError
from worklog_app.core.models import DateWindow


def test_defaults_are_rejected_as_placeholders():
    with pytest.raises(ConfigurationError, match="server"):
        validate_settings(Settings())
    with pytest.raises(ConfigurationError, match="API token"):
        validate_settings(Settings(server="https://acme.atlassian.net"))


def test_valid_settings_pass(settings):
    assert validate_settings(settings) is settings


@pytest.mark.parametrize(
    "change",
    [{"timezone": "Mars/Olympus"}, {"batch_size": 0}, {"search_page_size": -1}, {"max_retries": -1}],
)
def test_invalid_values(settings, change):
    with pytest.raises(ConfigurationError):
        validate_settings(replace(settings, **change))


def test_yaml_sections_env_and_overrides(tmp_path):
    cfg = tmp_path / "worklogs.yaml"
    cfg.write_text(
        "jira:\n"
        "  server: https://acme.atlassian.net\n"
        "  timezone: Europe/Madrid\n"
        "scope:\n"
        "  group_name: Platform\n"
        "window:\n"
        "  start_date: 2025-09-01\n"
        "  end_date: 2025-09-30\n"
        "fetch:\n"
        "  batch_size: '50'\n"
        "  enable_batching: 'no'\n"
        "  search_fields: summary, status\n"
        "unknown_key: 1\n"
    )
    env = {"JIRA_EMAIL": "ann@acme.com", "JIRA_TOKEN": "secret"}
    settings = load_settings(cfg, env=env, overrides={"batch_delay": 0.5, "jql": None})
    assert settings.server == "https://acme.atlassian.net"
    assert settings.timezone == "Europe/Madrid"
    assert settings.group_name == "Platform"
    assert settings.start_date == "2025-09-01"
    assert settings.batch_size == 50
    assert settings.enable_batching is False
    assert settings.search_fields == ("summary", "status")
    assert settings.email == "ann@acme.com"
    assert settings.api_token == "secret"
    assert settings.batch_delay == 0.5
    assert settings.jql is None
    assert settings.extra == {"unknown_key": 1}
    validate_settings(settings)


def test_missing_or_bad_config_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(tmp_path / "nope.yaml", env={})
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_settings(bad, env={})


def test_override_type_errors():
    with pytest.raises(ConfigurationError, match="integer"):
        apply_overrides(Settings(), {"batch_size": "many"})


def test_date_window_helpers():
    window = DateWindow.last_days(30, today=date(2025, 10, 15))
    assert (window.start, window.end) == (date(2025, 9, 15), date(2025, 10, 15))
    assert window.days == 31
    with pytest.raises(ConfigurationError):
        DateWindow.last_days(-1)
    with pytest.raises(ConfigurationError):
        DateWindow.parse("2025-13-01", "2025-12-31")
    with pytest.raises(ConfigurationError):
        DateWindow(date(2025, 9, 2), date(2025, 9, 1)).validate(date(2025, 10, 1))
    single = DateWindow(date(2025, 9, 1), date(2025, 9, 1)).validate(date(2025, 10, 1))
    assert single.days == 1


def test_jql_author_emails(settings):
    cfg = apply_overrides(settings, {"jql": "project = ABC", "jql_author_emails": "a@x.com, b@x.com"})
    assert cfg.jql_author_emails == ("a@x.com", "b@x.com")
    assert validate_settings(cfg) is cfg
    with pytest.raises(ConfigurationError, match="JQL query scope"):
        validate_settings(replace(settings, jql_author_emails=("a@x.com",)))
