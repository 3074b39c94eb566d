"""
Run controller.

Sequences one run: validate the integration format, drive every feed job
to a terminal state concurrently, then archive, apply retention, delete the
processed feed files and send the report. File-system work starts only
after every job has finished, so nothing is deleted while a job may still
be reading it.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path

from feedrelay.archive import create_archive
from feedrelay.config.settings import RunSettings
from feedrelay.core.formats import IntegrationFormat
from feedrelay.core.job import FeedJob
from feedrelay.core.poller import ConvergencePoller
from feedrelay.core.report import ReportAggregator, RunReport
from feedrelay.core.result import RunResult
from feedrelay.core.retention import purge_expired
from feedrelay.exceptions import ArchiveError, ConfigurationError, NotificationError
from feedrelay.integration.types import IntegrationClient
from feedrelay.notify import Notifier
from feedrelay.utils.logging import LOG_FILE_PREFIX, LOG_FILE_SUFFIX, flush_logging, get_logger

logger = get_logger("feedrelay.controller")

Archiver = Callable[[Path, list[Path], bool], Path]


def archive_glob(name_format: str) -> str:
    """Glob matching every archive name ``name_format`` can produce."""
    return re.sub(r"%.", "*", name_format)


class RunController:
    """
    Executes one feedrelay run.

    Examples:
        >>> async with HttpIntegrationClient(settings.server) as client:
        ...     controller = RunController(settings, client, notifier=SmtpNotifier.from_settings(...))
        ...     result = await controller.execute()
    """

    def __init__(
        self,
        settings: RunSettings,
        client: IntegrationClient,
        notifier: Notifier | None = None,
        archiver: Archiver = create_archive,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        log_file: Path | None = None,
    ):
        self.settings = settings
        self.client = client
        self.notifier = notifier
        self.archiver = archiver
        self.clock = clock
        self.log_file = Path(log_file) if log_file else None
        self.poller = ConvergencePoller(
            interval=settings.polling.interval,
            abort_threshold=settings.polling.abort_threshold,
            sleep=sleep,
        )
        self.aggregator = ReportAggregator(settings.name, settings.notification.subject_prefix)
        self.report: RunReport | None = None

    def build_jobs(self) -> list[FeedJob]:
        """One job per configured feed, in configuration order."""
        return [FeedJob.from_spec(spec, clock=self.clock) for spec in self.settings.feeds]

    def check_format(self) -> IntegrationFormat:
        """
        Parse the global integration format.

        Raises:
            ConfigurationError: If the format is unknown
        """
        return IntegrationFormat.parse(self.settings.integration_format)

    def validate(self) -> list[FeedJob]:
        """
        Check every feed without submitting or deleting anything.

        Raises:
            ConfigurationError: If the global integration format is invalid
        """
        fmt = self.check_format()
        jobs = self.build_jobs()
        for job in jobs:
            job.prepare_sync(fmt)
        return jobs

    async def execute(self) -> RunResult:
        """Run every configured feed and the post-run cleanup."""
        result = RunResult(started_at=self.clock(), log_file=self.log_file)
        logger.info(f"Run started for '{self.settings.name}' with {len(self.settings.feeds)} feed files")

        try:
            fmt = self.check_format()
        except ConfigurationError as e:
            result.fatal_error = e.message
            logger.error(f"Run aborted before processing any feed: {e.message}")
            fmt = None

        if fmt is not None:
            result.jobs = self.build_jobs()
            await self.run_jobs(result.jobs, fmt)

            if self.settings.archive.enabled:
                self.archive(result)
            else:
                logger.info("Archiving disabled")

        self.purge_logs(result)

        if fmt is not None:
            self.delete_feeds(result)

        result.finished_at = self.clock()
        logger.info(
            f"Run finished in {result.duration:.1f}s: "
            f"{result.error_total} errors, {result.warning_total} warnings"
        )

        self.report = self.aggregator.build(result)
        await self.notify(self.report)
        return result

    async def run_jobs(self, jobs: list[FeedJob], fmt: IntegrationFormat) -> None:
        """Run all jobs concurrently and wait for every one to finish."""
        await asyncio.gather(*(self._run_job(job, fmt) for job in jobs))

    async def _run_job(self, job: FeedJob, fmt: IntegrationFormat) -> None:
        try:
            await job.run(fmt, self.client, self.poller)
        except Exception as e:
            # Unexpected failure in one job must not stop the others
            job.error_count += 1
            job.message = f"Unexpected error: {e}"
            if job.finished_at is None:
                job.finished_at = self.clock()
            logger.exception(f"{job.name}: unexpected error in state {job.state.value}: {e}")

    def archive_path(self, started_at: datetime) -> Path:
        return self.settings.archive.dir / started_at.strftime(self.settings.archive.name_format)

    def archive(self, result: RunResult) -> None:
        """Bundle the log and remaining feed files, then purge expired bundles."""
        archive_settings = self.settings.archive
        target = self.archive_path(result.started_at)

        paths: list[Path] = []
        if self.log_file is not None:
            flush_logging()
            paths.append(self.log_file)
        for job in result.jobs:
            if job.path.is_file():
                paths.append(job.path)
            else:
                logger.info(f"Archive: {job.path} is gone, not archiving it")

        try:
            result.archive_path = self.archiver(target, paths, target.exists())
        except ArchiveError as e:
            logger.error(f"Archive failed: {e.message}")
            result.notes.append(f"Archive failed: {e.message}")

        result.deleted_archives = purge_expired(
            archive_settings.dir,
            archive_glob(archive_settings.name_format),
            archive_settings.retention_days,
            self.clock(),
            exclude=[target],
        )

    def purge_logs(self, result: RunResult) -> None:
        log_settings = self.settings.logging
        exclude = [self.log_file] if self.log_file else []
        result.deleted_logs = purge_expired(
            log_settings.dir,
            f"{LOG_FILE_PREFIX}*{LOG_FILE_SUFFIX}",
            log_settings.retention_days,
            self.clock(),
            exclude=exclude,
        )

    def delete_feeds(self, result: RunResult) -> None:
        """Delete every processed feed file still on disk, whatever its outcome."""
        for job in result.jobs:
            if not job.path.is_file():
                continue
            try:
                job.path.unlink()
            except OSError as e:
                logger.error(f"Could not delete feed file {job.path}: {e}")
                result.notes.append(f"Could not delete {job.path}: {e}")
                continue
            logger.info(f"Deleted feed file {job.path}")
            result.deleted_feeds.append(job.path)

    async def notify(self, report: RunReport) -> None:
        settings = self.settings.notification
        if self.notifier is None or not settings.enabled:
            logger.debug("Notification disabled, report not sent")
            return
        if settings.only_on_problems and not report.has_problems:
            logger.info("Run succeeded, report not sent (only_on_problems)")
            return
        try:
            await self.notifier.send(list(settings.recipients), report.subject, report.body)
        except NotificationError as e:
            logger.error(f"Report delivery failed: {e.message}")
