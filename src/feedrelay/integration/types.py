"""
Type definitions for the integration endpoint collaborator.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class ServerOptions:
    """Connection settings for the integration endpoint."""

    base_url: str
    username: str | None = None
    password: str | None = None
    timeout: float = 120.0
    verify_ssl: bool = True
    # Path templates, formatted with record_type/operation and job_id
    submit_path: str = "/endpoint/{record_type}/{operation}"
    status_path: str = "/endpoint/dataSetStatus/{job_id}"
    max_retries: int = 3
    retry_delay: float = 1.0


class IntegrationClient(Protocol):
    """
    Integration endpoint protocol.

    Submits one feed file and reports per-job record counts. Implementations
    raise IntegrationError (or a subclass) on failure.
    """

    async def submit(self, path: Path, record_type: str, operation: str) -> str: ...

    async def poll_completed(self, job_id: str) -> int: ...

    async def poll_errors(self, job_id: str) -> int: ...

    async def poll_warnings(self, job_id: str) -> int: ...

    async def poll_summary(self, job_id: str) -> str: ...
