"""
feedrelay - submit feed files to an integration endpoint and track each
resulting job until it completes or stops making progress.
"""

__version__ = "0.1.0"

from feedrelay.archive import create_archive
from feedrelay.config.loader import Config, load_config
from feedrelay.config.settings import RunSettings, load_run_settings
from feedrelay.core.controller import RunController
from feedrelay.core.formats import IntegrationFormat
from feedrelay.core.job import FeedJob, JobState
from feedrelay.core.poller import ConvergencePoller, PollOutcome, PollResult
from feedrelay.core.report import ReportAggregator, RunReport
from feedrelay.core.result import RunResult
from feedrelay.core.retention import RetentionWindow, is_expired, purge_expired
from feedrelay.exceptions import (
    ArchiveError,
    ConfigurationError,
    FeedFileError,
    FeedRelayError,
    IntegrationError,
    InvalidTransitionError,
    NotificationError,
    StatusCheckError,
    SubmissionError,
)
from feedrelay.integration.client import HttpIntegrationClient
from feedrelay.integration.types import IntegrationClient, ServerOptions
from feedrelay.notify import Notifier, SmtpNotifier
from feedrelay.utils.logging import get_logger, setup_logging

__all__ = [
    "__version__",
    # Run
    "RunController",
    "RunResult",
    "RunSettings",
    "load_run_settings",
    # Configuration
    "Config",
    "load_config",
    # Jobs
    "FeedJob",
    "JobState",
    "IntegrationFormat",
    "ConvergencePoller",
    "PollOutcome",
    "PollResult",
    # Reporting
    "ReportAggregator",
    "RunReport",
    # Retention and archiving
    "RetentionWindow",
    "is_expired",
    "purge_expired",
    "create_archive",
    # Collaborators
    "HttpIntegrationClient",
    "IntegrationClient",
    "ServerOptions",
    "Notifier",
    "SmtpNotifier",
    # Exceptions
    "FeedRelayError",
    "ConfigurationError",
    "FeedFileError",
    "InvalidTransitionError",
    "IntegrationError",
    "SubmissionError",
    "StatusCheckError",
    "ArchiveError",
    "NotificationError",
    # Logging
    "get_logger",
    "setup_logging",
]
