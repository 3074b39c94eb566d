"""
feedrelay exception hierarchy.

All domain-specific exceptions inherit from FeedRelayError, so callers can
catch any framework error with a single base class while still handling
specific failures where it matters.

Hierarchy::

    FeedRelayError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── FeedFileError             - feed file missing or unreadable
    ├── InvalidTransitionError    - illegal feed job state change
    ├── IntegrationError          - integration endpoint failures
    │   ├── SubmissionError       - feed file upload rejected or failed
    │   └── StatusCheckError      - job status could not be read
    ├── ArchiveError              - archive bundle creation
    └── NotificationError         - report delivery
"""

from __future__ import annotations


class FeedRelayError(Exception):
    """Base exception for all feedrelay errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(FeedRelayError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Feed files --------------------------------------------------------------


class FeedFileError(FeedRelayError):
    """Raised when a feed file cannot be found or parsed."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"Feed file '{path}': {message}", details={"path": path})
        self.path = path


class InvalidTransitionError(FeedRelayError):
    """Raised when a feed job is moved to a state its current state cannot reach."""

    def __init__(self, name: str, current: str, target: str) -> None:
        super().__init__(
            f"Feed job '{name}' cannot move from {current} to {target}",
            details={"job": name, "from": current, "to": target},
        )


# --- Integration endpoint ----------------------------------------------------


class IntegrationError(FeedRelayError):
    """Raised when the integration endpoint cannot be reached or answers badly."""


class SubmissionError(IntegrationError):
    """Raised when a feed file upload fails or returns no job identifier."""


class StatusCheckError(IntegrationError):
    """Raised when the status of a submitted job cannot be read."""

    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(f"Status check for job {job_id} failed: {message}", details={"job_id": job_id})
        self.job_id = job_id


# --- Post-run collaborators ---------------------------------------------------


class ArchiveError(FeedRelayError):
    """Raised when an archive bundle cannot be written."""


class NotificationError(FeedRelayError):
    """Raised when the run report cannot be delivered."""
