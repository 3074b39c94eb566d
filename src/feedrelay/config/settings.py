"""
Typed run settings built from a loaded Config.

The integration format and each feed's record/operation types are kept as
written: the run controller rejects a bad format as a fatal error and each
feed job validates its own types, so a typo in one feed never stops the
others from loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from feedrelay.config.loader import Config, load_config
from feedrelay.config.resolver import find_unresolved
from feedrelay.exceptions import ConfigurationError
from feedrelay.integration.types import ServerOptions


@dataclass(frozen=True)
class FeedSpec:
    """One configured feed file."""

    path: Path
    record_type: str
    operation: str


@dataclass(frozen=True)
class PollingSettings:
    interval: float = 30.0
    abort_threshold: int = 10


@dataclass(frozen=True)
class LoggingSettings:
    dir: Path = Path("logs")
    level: str = "INFO"
    retention_days: int = 14
    console_enabled: bool = True


@dataclass(frozen=True)
class ArchiveSettings:
    enabled: bool = True
    dir: Path = Path("archive")
    retention_days: int = 30
    # strftime pattern; runs sharing a name append to the same bundle
    name_format: str = "feeds_%Y%m%d.zip"


@dataclass(frozen=True)
class NotificationSettings:
    enabled: bool = False
    recipients: tuple[str, ...] = ()
    sender: str = "feedrelay@localhost"
    subject_prefix: str = "[feedrelay]"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    use_tls: bool = False
    username: str | None = None
    password: str | None = None
    only_on_problems: bool = False


@dataclass(frozen=True)
class RunSettings:
    """Everything one run needs, resolved against the project directory."""

    name: str
    integration_format: str
    server: ServerOptions
    feeds: tuple[FeedSpec, ...]
    polling: PollingSettings = field(default_factory=PollingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    archive: ArchiveSettings = field(default_factory=ArchiveSettings)
    notification: NotificationSettings = field(default_factory=NotificationSettings)
    project_dir: Path = Path(".")

    @classmethod
    def from_config(cls, config: Config, project_dir: Path | None = None) -> "RunSettings":
        """
        Build typed settings from a loaded configuration.

        Args:
            config: Loaded configuration
            project_dir: Directory that relative paths are resolved against

        Returns:
            RunSettings instance

        Raises:
            ConfigurationError: If a value has the wrong shape or range
        """
        project_dir = project_dir or Path.cwd()
        integration = config.get("integration", {}) or {}
        server_cfg = integration.get("server", {}) or {}

        if not server_cfg.get("base_url"):
            raise ConfigurationError("Configuration 'integration.server.base_url' is required")
        _reject_unresolved(server_cfg, "integration.server")

        server = ServerOptions(
            base_url=str(server_cfg["base_url"]).rstrip("/"),
            username=server_cfg.get("username"),
            password=server_cfg.get("password"),
            timeout=_number(server_cfg, "timeout", 120.0, "integration.server"),
            verify_ssl=bool(server_cfg.get("verify_ssl", True)),
            submit_path=server_cfg.get("submit_path", ServerOptions.submit_path),
            status_path=server_cfg.get("status_path", ServerOptions.status_path),
            max_retries=_integer(server_cfg, "max_retries", 3, "integration.server", minimum=1),
            retry_delay=_number(server_cfg, "retry_delay", 1.0, "integration.server"),
        )

        polling_cfg = config.get("polling", {}) or {}
        polling = PollingSettings(
            interval=_number(polling_cfg, "interval", 30.0, "polling"),
            abort_threshold=_integer(polling_cfg, "abort_threshold", 10, "polling", minimum=1),
        )

        logging_cfg = config.get("logging", {}) or {}
        logging_settings = LoggingSettings(
            dir=_resolve_path(project_dir, logging_cfg.get("dir", "logs")),
            level=str(logging_cfg.get("level", "INFO")).upper(),
            retention_days=_integer(logging_cfg, "retention_days", 14, "logging", minimum=0),
            console_enabled=bool(logging_cfg.get("console_enabled", True)),
        )

        archive_cfg = config.get("archive", {}) or {}
        archive = ArchiveSettings(
            enabled=bool(archive_cfg.get("enabled", True)),
            dir=_resolve_path(project_dir, archive_cfg.get("dir", "archive")),
            retention_days=_integer(archive_cfg, "retention_days", 30, "archive", minimum=0),
            name_format=str(archive_cfg.get("name_format", ArchiveSettings.name_format)),
        )

        notify_cfg = config.get("notification", {}) or {}
        recipients = notify_cfg.get("recipients", []) or []
        if isinstance(recipients, str):
            recipients = [r.strip() for r in recipients.split(",") if r.strip()]
        notification = NotificationSettings(
            enabled=bool(notify_cfg.get("enabled", False)),
            recipients=tuple(recipients),
            sender=notify_cfg.get("sender", NotificationSettings.sender),
            subject_prefix=notify_cfg.get("subject_prefix", NotificationSettings.subject_prefix),
            smtp_host=notify_cfg.get("smtp_host", NotificationSettings.smtp_host),
            smtp_port=_integer(notify_cfg, "smtp_port", 25, "notification", minimum=1),
            use_tls=bool(notify_cfg.get("use_tls", False)),
            username=notify_cfg.get("username"),
            password=notify_cfg.get("password"),
            only_on_problems=bool(notify_cfg.get("only_on_problems", False)),
        )
        if notification.enabled and not notification.recipients:
            raise ConfigurationError("Configuration 'notification.recipients' is required when notification is enabled")
        if notification.enabled:
            _reject_unresolved(notify_cfg, "notification")

        feeds = tuple(_feed_spec(project_dir, index, entry) for index, entry in enumerate(config.feeds or []))

        return cls(
            name=str(config.get("name", project_dir.name)),
            integration_format=str(integration.get("format", "")),
            server=server,
            feeds=feeds,
            polling=polling,
            logging=logging_settings,
            archive=archive,
            notification=notification,
            project_dir=project_dir,
        )


def _reject_unresolved(section: dict, where: str) -> None:
    unresolved = list(find_unresolved(section, where))
    if unresolved:
        listed = ", ".join(f"'{key}' (${{{name}}})" for key, name in unresolved)
        raise ConfigurationError(
            f"Environment variables are not set for {listed}",
            details={"unresolved": [name for _key, name in unresolved]},
        )


def _feed_spec(project_dir: Path, index: int, entry: Any) -> FeedSpec:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Configuration 'feeds[{index}]' must be a mapping, got {type(entry).__name__}")
    missing = [key for key in ("path", "record_type", "operation") if not entry.get(key)]
    if missing:
        raise ConfigurationError(
            f"Configuration 'feeds[{index}]' is missing: {', '.join(missing)}",
            details={"feed": index, "missing": missing},
        )
    return FeedSpec(
        path=_resolve_path(project_dir, entry["path"]),
        record_type=str(entry["record_type"]),
        operation=str(entry["operation"]),
    )


def _resolve_path(project_dir: Path, value: Any) -> Path:
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = project_dir / path
    return path


def _number(section: dict, key: str, default: float, where: str) -> float:
    value = section.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Configuration '{where}.{key}' must be a number, got {value!r}") from e
    if number < 0:
        raise ConfigurationError(f"Configuration '{where}.{key}' must be >= 0, got {number}")
    return number


def _integer(section: dict, key: str, default: int, where: str, minimum: int = 0) -> int:
    value = section.get(key, default)
    if isinstance(value, bool):
        raise ConfigurationError(f"Configuration '{where}.{key}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Configuration '{where}.{key}' must be an integer, got {value!r}") from e
    if number < minimum:
        raise ConfigurationError(f"Configuration '{where}.{key}' must be >= {minimum}, got {number}")
    return number


def load_run_settings(project_dir: Path, env: str | None = None) -> RunSettings:
    """Load config.yaml (plus the env overlay) and build typed settings."""
    return RunSettings.from_config(load_config(project_dir, env=env), project_dir=project_dir)
