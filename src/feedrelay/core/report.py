"""
Run report rendering.

Reduces a RunResult to the subject and plain-text body handed to the
notifier, and to the rows shown in the CLI summary table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from feedrelay.core.job import FeedJob, JobState
from feedrelay.core.result import RunResult

STATUS_FATAL = "GLOBAL CONFIGURATION ERROR"
STATUS_ERRORS = "ERRORS"
STATUS_WARNINGS = "WARNINGS"
STATUS_SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class RunReport:
    status: str
    subject: str
    body: str

    @property
    def has_problems(self) -> bool:
        return self.status != STATUS_SUCCESS


def run_status(result: RunResult) -> str:
    """Overall status: fatal error, then errors, then warnings."""
    if result.fatal_error:
        return STATUS_FATAL
    if result.error_total:
        return STATUS_ERRORS
    if result.warning_total:
        return STATUS_WARNINGS
    return STATUS_SUCCESS


def format_duration(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    seconds = int(round(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def job_state_label(job: FeedJob) -> str:
    """State shown to humans: the poll outcome once a job is finalized."""
    if job.state == JobState.FINALIZED and job.outcome is not None:
        return job.outcome.value
    return job.state.value


def summary_rows(result: RunResult) -> list[tuple[str, ...]]:
    """One row per job: name, record type, operation, state, job id, records, errors, warnings, duration."""
    rows = []
    for job in result.jobs:
        if job.expected_count is None:
            records = "-"
        elif job.job_id:
            records = f"{job.completed_count}/{job.expected_count}"
        else:
            records = str(job.expected_count)
        rows.append(
            (
                job.name,
                job.record_type,
                job.operation,
                job_state_label(job),
                job.job_id or "-",
                records,
                str(job.error_count),
                str(job.warning_count),
                format_duration(job.duration),
            )
        )
    return rows


class ReportAggregator:
    """Builds the notification report for a finished run."""

    def __init__(self, project_name: str, subject_prefix: str = "[feedrelay]"):
        self.project_name = project_name
        self.subject_prefix = subject_prefix

    def subject(self, status: str) -> str:
        prefix = f"{self.subject_prefix} " if self.subject_prefix else ""
        return f"{prefix}{self.project_name}: {status}"

    def build(self, result: RunResult) -> RunReport:
        status = run_status(result)
        return RunReport(status=status, subject=self.subject(status), body=self._body(result, status))

    def _body(self, result: RunResult, status: str) -> str:
        lines = [
            f"Feed run report: {self.project_name}",
            "",
            f"Status:   {status}",
            f"Started:  {_timestamp(result.started_at)}",
            f"Finished: {_timestamp(result.finished_at)}",
            f"Duration: {format_duration(result.duration)}",
        ]

        if result.fatal_error:
            lines += [
                "",
                "No feed files were processed.",
                f"Fatal configuration error: {result.fatal_error}",
            ]
        else:
            by_state = ", ".join(f"{count} {state}" for state, count in result.count_by_state().items())
            lines += [
                f"Feeds:    {len(result.jobs)}" + (f" ({by_state})" if by_state else ""),
                f"Errors:   {result.error_total}",
                f"Warnings: {result.warning_total}",
            ]
            for job in result.jobs:
                lines += ["", *self._job_lines(job)]

        lines += ["", *self._cleanup_lines(result)]
        return "\n".join(lines) + "\n"

    def _job_lines(self, job: FeedJob) -> list[str]:
        lines = [
            job.name,
            f"  Path:        {job.path}",
            f"  Record type: {job.record_type}",
            f"  Operation:   {job.operation}",
            f"  State:       {job_state_label(job)}",
        ]
        if job.job_id:
            lines.append(f"  Job id:      {job.job_id}")
        if job.expected_count is not None:
            if job.job_id:
                lines.append(f"  Records:     {job.completed_count}/{job.expected_count} completed")
            else:
                lines.append(f"  Records:     {job.expected_count}")
        lines += [
            f"  Errors:      {job.error_count}",
            f"  Warnings:    {job.warning_count}",
            f"  Duration:    {format_duration(job.duration)}",
        ]
        if job.message:
            lines.append(f"  Note:        {job.message}")
        if job.summary:
            lines.append("  Status summary:")
            lines += [f"    {line}" for line in job.summary.splitlines()]
        return lines

    def _cleanup_lines(self, result: RunResult) -> list[str]:
        lines = ["Cleanup"]
        if result.log_file:
            lines.append(f"  Log file:         {result.log_file}")
        lines.append(f"  Archive:          {result.archive_path or 'not written'}")
        lines.append(f"  Feeds deleted:    {len(result.deleted_feeds)}")
        lines.append(f"  Logs purged:      {len(result.deleted_logs)}")
        lines.append(f"  Archives purged:  {len(result.deleted_archives)}")
        lines += [f"  {note}" for note in result.notes]
        return lines
