"""
Run-level result, owned by one RunController execution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from feedrelay.core.job import FeedJob, JobState


@dataclass
class RunResult:
    """
    Outcome of one run.

    Jobs are kept in configuration order. When ``fatal_error`` is set no job
    was processed and the fatal error is the run's only reported error.
    """

    started_at: datetime
    finished_at: datetime | None = None
    jobs: list[FeedJob] = field(default_factory=list)
    fatal_error: str | None = None
    log_file: Path | None = None
    archive_path: Path | None = None
    deleted_logs: list[Path] = field(default_factory=list)
    deleted_archives: list[Path] = field(default_factory=list)
    deleted_feeds: list[Path] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def error_total(self) -> int:
        if self.fatal_error:
            return 1
        return sum(job.error_count for job in self.jobs)

    @property
    def warning_total(self) -> int:
        if self.fatal_error:
            return 0
        return sum(job.warning_count for job in self.jobs)

    @property
    def duration(self) -> float | None:
        """Run duration in seconds."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.fatal_error is None and self.error_total == 0

    def count_by_state(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for job in self.jobs:
            key = job.outcome.value if job.state == JobState.FINALIZED and job.outcome else job.state.value
            counts[key] = counts.get(key, 0) + 1
        return counts
