"""Jira work-log fetcher: scope-aware extraction of time-tracking records."""

__version__ = "0.1.0"
