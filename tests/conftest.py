"""
Shared fixtures for feedrelay tests.
"""

import logging
from dataclasses import replace
from pathlib import Path

import pytest

from feedrelay.config.settings import (
    ArchiveSettings,
    FeedSpec,
    LoggingSettings,
    NotificationSettings,
    PollingSettings,
    RunSettings,
)
from feedrelay.integration.types import ServerOptions


@pytest.fixture(autouse=True)
def reset_feedrelay_logging():
    """Detach any handlers a test installed on the feedrelay logger."""
    yield
    logger = logging.getLogger("feedrelay")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_flatfile(tmp_path):
    """Write a flat feed file with a header line and ``records`` data lines."""

    def _write(name: str, records: int, directory: Path | None = None) -> Path:
        path = (directory or tmp_path / "feeds") / name
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = ["EXTERNAL_PERSON_KEY|USER_ID|FIRSTNAME|LASTNAME"]
        lines += [f"P{i:05d}|user{i}|First{i}|Last{i}" for i in range(records)]
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture
def make_settings(tmp_path):
    """Build RunSettings rooted in tmp_path; keyword arguments replace fields."""

    def _make(feeds=(), integration_format: str = "flatfile", **overrides) -> RunSettings:
        specs = tuple(
            spec if isinstance(spec, FeedSpec) else FeedSpec(path=Path(spec[0]), record_type=spec[1], operation=spec[2])
            for spec in feeds
        )
        settings = RunSettings(
            name="campus",
            integration_format=integration_format,
            server=ServerOptions(base_url="https://integration.example.com"),
            feeds=specs,
            polling=PollingSettings(interval=0, abort_threshold=3),
            logging=LoggingSettings(dir=tmp_path / "logs", retention_days=14, console_enabled=False),
            archive=ArchiveSettings(dir=tmp_path / "archive", retention_days=30),
            notification=NotificationSettings(enabled=True, recipients=("ops@example.com",)),
            project_dir=tmp_path,
        )
        return replace(settings, **overrides)

    return _make
