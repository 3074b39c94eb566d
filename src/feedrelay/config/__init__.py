"""
Configuration loading and typed run settings.
"""

from feedrelay.config.loader import Config, load_config
from feedrelay.config.settings import (
    ArchiveSettings,
    FeedSpec,
    LoggingSettings,
    NotificationSettings,
    PollingSettings,
    RunSettings,
    load_run_settings,
)

__all__ = [
    "Config",
    "load_config",
    "ArchiveSettings",
    "FeedSpec",
    "LoggingSettings",
    "NotificationSettings",
    "PollingSettings",
    "RunSettings",
    "load_run_settings",
]
