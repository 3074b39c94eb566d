"""
Feed job lifecycle: polling, retention, run control and reporting.
"""

from feedrelay.core.controller import RunController
from feedrelay.core.formats import IntegrationFormat, validate_feed_types
from feedrelay.core.job import FeedJob, JobState
from feedrelay.core.poller import ConvergencePoller, PollOutcome, PollResult
from feedrelay.core.report import ReportAggregator, RunReport
from feedrelay.core.result import RunResult
from feedrelay.core.retention import RetentionWindow, find_expired, is_expired, purge_expired

__all__ = [
    "RunController",
    "IntegrationFormat",
    "validate_feed_types",
    "FeedJob",
    "JobState",
    "ConvergencePoller",
    "PollOutcome",
    "PollResult",
    "ReportAggregator",
    "RunReport",
    "RunResult",
    "RetentionWindow",
    "find_expired",
    "is_expired",
    "purge_expired",
]
