"""
Feed job lifecycle.

A FeedJob follows one configured feed file from discovery through
submission, status polling and final accounting:

    PENDING -> COUNTED -> SUBMITTED -> POLLING -> CONVERGED | ABORTED -> FINALIZED
    PENDING -> CONFIG_INVALID                 (feed file missing or unreadable)
    COUNTED -> CONFIG_INVALID                 (record type / operation not allowed)
    COUNTED -> SKIPPED                        (no records)
    COUNTED -> SUBMIT_FAILED                  (upload failed)

Jobs own disjoint state, so any number of them can run concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from feedrelay.config.settings import FeedSpec
from feedrelay.core.counting import count_records
from feedrelay.core.formats import IntegrationFormat, validate_feed_types
from feedrelay.core.poller import ConvergencePoller, PollOutcome
from feedrelay.exceptions import FeedFileError, IntegrationError, InvalidTransitionError
from feedrelay.integration.types import IntegrationClient
from feedrelay.utils.logging import get_logger

logger = get_logger("feedrelay.job")


class JobState(StrEnum):
    """Feed job lifecycle state."""

    PENDING = "pending"
    COUNTED = "counted"
    SKIPPED = "skipped"
    CONFIG_INVALID = "config_invalid"
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"
    POLLING = "polling"
    CONVERGED = "converged"
    ABORTED = "aborted"
    FINALIZED = "finalized"


_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.PENDING: frozenset({JobState.COUNTED, JobState.CONFIG_INVALID}),
    JobState.COUNTED: frozenset(
        {JobState.SKIPPED, JobState.CONFIG_INVALID, JobState.SUBMITTED, JobState.SUBMIT_FAILED}
    ),
    JobState.SUBMITTED: frozenset({JobState.POLLING}),
    JobState.POLLING: frozenset({JobState.CONVERGED, JobState.ABORTED}),
    JobState.CONVERGED: frozenset({JobState.FINALIZED}),
    JobState.ABORTED: frozenset({JobState.FINALIZED}),
}

# States in which the endpoint has accepted the file and issued an identifier
SUBMITTED_STATES = frozenset(
    {JobState.SUBMITTED, JobState.POLLING, JobState.CONVERGED, JobState.ABORTED, JobState.FINALIZED}
)

TERMINAL_STATES = frozenset({JobState.SKIPPED, JobState.CONFIG_INVALID, JobState.SUBMIT_FAILED, JobState.FINALIZED})


@dataclass
class FeedJob:
    """
    State of one feed file's submission.

    Per-job failures never raise out of run(); they land in ``state`` and
    ``message`` and are counted in ``error_count``.
    """

    path: Path
    record_type: str
    operation: str
    name: str = ""
    job_id: str | None = None
    expected_count: int | None = None
    completed_count: int = 0
    consecutive_stalls: int = 0
    error_count: int = 0
    warning_count: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    state: JobState = JobState.PENDING
    outcome: PollOutcome | None = None
    message: str | None = None
    summary: str | None = None
    clock: Callable[[], datetime] = field(default=datetime.now, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if not self.name:
            self.name = self.path.name

    @classmethod
    def from_spec(cls, spec: FeedSpec, clock: Callable[[], datetime] = datetime.now) -> "FeedJob":
        return cls(path=spec.path, record_type=spec.record_type, operation=spec.operation, clock=clock)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def duration(self) -> float | None:
        """Job duration in seconds."""
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def _transition(self, target: JobState) -> None:
        if target not in _TRANSITIONS.get(self.state, frozenset()):
            raise InvalidTransitionError(self.name, self.state.value, target.value)
        logger.debug(f"{self.name}: {self.state.value} -> {target.value}")
        self.state = target
        if target in TERMINAL_STATES:
            self.finished_at = self.clock()

    def _fail(self, target: JobState, message: str) -> None:
        self.message = message
        self.error_count += 1
        self._transition(target)

    def set_expected_count(self, count: int) -> None:
        if self.expected_count is not None:
            raise ValueError(f"{self.name}: expected record count is already set")
        if count < 0:
            raise ValueError(f"{self.name}: expected record count must be >= 0")
        self.expected_count = count

    def _begin(self) -> bool:
        if self.started_at is None:
            self.started_at = self.clock()
        if not self.path.is_file():
            self._fail(JobState.CONFIG_INVALID, f"Feed file not found: {self.path}")
            logger.error(f"{self.name}: {self.message}")
            return False
        return True

    def _count_failed(self, error: FeedFileError) -> bool:
        self._fail(JobState.CONFIG_INVALID, error.message)
        logger.error(f"{self.name}: {self.message}")
        return False

    def _counted(self, fmt: IntegrationFormat, count: int) -> bool:
        self.set_expected_count(count)
        self._transition(JobState.COUNTED)
        logger.info(f"{self.name}: {count} {self.record_type} records to {self.operation}")

        problems = validate_feed_types(fmt, self.record_type, self.operation)
        if problems:
            self._fail(JobState.CONFIG_INVALID, "; ".join(problems))
            logger.error(f"{self.name}: not submitted, {self.message}")
            return False

        if count == 0:
            self.message = "Feed file contains no records"
            self._transition(JobState.SKIPPED)
            logger.info(f"{self.name}: skipped, feed file contains no records")
            return False

        return True

    async def prepare(self, fmt: IntegrationFormat) -> bool:
        """
        Check the feed file and count its records.

        Counting reads the whole file, so it runs in a worker thread and
        other jobs keep polling meanwhile.

        Returns:
            True if the job is ready to submit
        """
        if not self._begin():
            return False
        try:
            count = await asyncio.to_thread(count_records, self.path, fmt, self.record_type)
        except FeedFileError as e:
            return self._count_failed(e)
        return self._counted(fmt, count)

    def prepare_sync(self, fmt: IntegrationFormat) -> bool:
        """Blocking variant of prepare(), for validation outside an event loop."""
        if not self._begin():
            return False
        try:
            count = count_records(self.path, fmt, self.record_type)
        except FeedFileError as e:
            return self._count_failed(e)
        return self._counted(fmt, count)

    async def submit(self, client: IntegrationClient) -> bool:
        """
        Upload the feed file.

        Returns:
            True if the endpoint accepted the file and issued a job identifier
        """
        try:
            job_id = await client.submit(self.path, self.record_type, self.operation)
        except IntegrationError as e:
            self._fail(JobState.SUBMIT_FAILED, f"Submission failed: {e}")
            logger.error(f"{self.name}: {self.message}")
            return False

        if not job_id:
            self._fail(JobState.SUBMIT_FAILED, "Submission failed: endpoint returned no job identifier")
            logger.error(f"{self.name}: {self.message}")
            return False

        self.job_id = job_id
        self._transition(JobState.SUBMITTED)
        logger.info(f"{self.name}: submitted as job {job_id}")
        return True

    async def track(self, client: IntegrationClient, poller: ConvergencePoller) -> None:
        """Poll the submitted job until it converges or stalls out."""
        assert self.job_id is not None and self.expected_count is not None
        job_id = self.job_id
        self._transition(JobState.POLLING)

        result = await poller.poll(
            self.expected_count,
            lambda: client.poll_completed(job_id),
            label=f"{self.name} [{job_id}]",
        )
        self.completed_count = result.completed_count
        self.consecutive_stalls = result.consecutive_stalls
        self.outcome = result.outcome
        self._transition(JobState.CONVERGED if result.converged else JobState.ABORTED)

    async def finalize(self, client: IntegrationClient) -> None:
        """
        Fetch final error/warning counts and the status summary.

        Runs after ABORTED as well, to capture partial progress. An aborted
        job's whole expected count is added to its warnings, since none of
        its records can be confirmed.
        """
        assert self.job_id is not None
        try:
            self.error_count += await client.poll_errors(self.job_id)
        except IntegrationError as e:
            logger.error(f"{self.name}: could not read error count for job {self.job_id}: {e}")
        try:
            self.warning_count += await client.poll_warnings(self.job_id)
        except IntegrationError as e:
            logger.error(f"{self.name}: could not read warning count for job {self.job_id}: {e}")
        try:
            self.summary = await client.poll_summary(self.job_id)
        except IntegrationError as e:
            logger.warning(f"{self.name}: could not read status summary for job {self.job_id}: {e}")

        if self.state == JobState.ABORTED:
            self.warning_count += self.expected_count or 0
            self.message = (
                f"Gave up after {self.consecutive_stalls} checks without progress "
                f"({self.completed_count}/{self.expected_count} completed)"
            )

        self._transition(JobState.FINALIZED)
        logger.info(
            f"{self.name}: finalized ({self.outcome.value if self.outcome else '-'}), "
            f"{self.completed_count}/{self.expected_count} completed, "
            f"{self.error_count} errors, {self.warning_count} warnings"
        )

    async def run(self, fmt: IntegrationFormat, client: IntegrationClient, poller: ConvergencePoller) -> "FeedJob":
        """Drive the job from PENDING to a terminal state."""
        if not await self.prepare(fmt):
            return self
        if not await self.submit(client):
            return self
        await self.track(client, poller)
        await self.finalize(client)
        return self
