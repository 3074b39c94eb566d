"""
Testing utilities for feedrelay runs.

Provides an in-memory integration client with scripted status sequences,
a notifier that records what it was asked to send, and a sleep that does
not wait, so whole runs can be exercised without a network or real time.

Usage:
    from feedrelay.testing import ScriptedIntegrationClient, RecordingNotifier, no_sleep

    client = ScriptedIntegrationClient(
        completed={"person.txt": [50, 75, 100]},
        errors={"person.txt": 2},
    )
    controller = RunController(settings, client, notifier=RecordingNotifier(), sleep=no_sleep)
    result = await controller.execute()
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from feedrelay.exceptions import StatusCheckError, SubmissionError


async def no_sleep(_seconds: float) -> None:
    """Stand-in for asyncio.sleep that returns immediately."""
    return None


@dataclass
class ScriptedIntegrationClient:
    """
    In-memory integration client keyed by feed file name.

    ``completed`` maps a file name to the successive completed counts the
    endpoint reports; an Exception instance in the sequence is raised for
    that check instead. Once a sequence is exhausted its last entry repeats.
    File names listed in ``submit_failures`` are rejected on upload.
    """

    completed: dict[str, list[int | Exception]] = field(default_factory=dict)
    errors: dict[str, int] = field(default_factory=dict)
    warnings: dict[str, int] = field(default_factory=dict)
    submit_failures: dict[str, str] = field(default_factory=dict)
    submitted: list[tuple[str, str, str]] = field(default_factory=list)
    status_checks: dict[str, int] = field(default_factory=dict)
    _jobs: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    async def __aenter__(self) -> "ScriptedIntegrationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def submit(self, path: Path, record_type: str, operation: str) -> str:
        name = Path(path).name
        if name in self.submit_failures:
            raise SubmissionError(self.submit_failures[name])
        job_id = f"{len(self._jobs) + 1:032x}"
        self._jobs[job_id] = name
        self.submitted.append((name, record_type, operation))
        return job_id

    def _name(self, job_id: str) -> str:
        if job_id not in self._jobs:
            raise StatusCheckError(job_id, "unknown job")
        return self._jobs[job_id]

    async def poll_completed(self, job_id: str) -> int:
        name = self._name(job_id)
        index = self.status_checks.get(name, 0)
        self.status_checks[name] = index + 1
        script: Sequence[int | Exception] = self.completed.get(name) or [0]
        value = script[min(index, len(script) - 1)]
        if isinstance(value, Exception):
            raise value
        return value

    async def poll_errors(self, job_id: str) -> int:
        return self.errors.get(self._name(job_id), 0)

    async def poll_warnings(self, job_id: str) -> int:
        return self.warnings.get(self._name(job_id), 0)

    async def poll_summary(self, job_id: str) -> str:
        name = self._name(job_id)
        return f"job: {job_id}\nfile: {name}"


@dataclass
class SentReport:
    recipients: list[str]
    subject: str
    body: str


@dataclass
class RecordingNotifier:
    """Notifier that keeps every report instead of delivering it."""

    sent: list[SentReport] = field(default_factory=list)

    async def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        self.sent.append(SentReport(list(recipients), subject, body))

