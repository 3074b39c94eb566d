"""
Convergence polling for submitted feed jobs.

The integration endpoint processes records asynchronously and its status
reporting is flaky, so the poller waits for the completed count to reach
the expected total and gives up once the count stops moving for
``abort_threshold`` consecutive checks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from feedrelay.utils.logging import get_logger

logger = get_logger("feedrelay.poller")


class PollOutcome(StrEnum):
    """Terminal outcome of a polling loop."""

    CONVERGED = "converged"
    ABORTED = "aborted"


@dataclass
class PollResult:
    """Final observation of a polling loop, kept for logging and reporting."""

    outcome: PollOutcome
    completed_count: int
    consecutive_stalls: int
    iterations: int

    @property
    def converged(self) -> bool:
        return self.outcome == PollOutcome.CONVERGED


class ConvergencePoller:
    """
    Polls a status check until the job converges or stalls out.

    Each iteration sleeps for ``interval`` seconds, then calls the check.
    A check that returns the same count as the previous one, or that raises,
    counts as one stall; any change resets the stall counter. The first
    count read is a stall too, since there is no earlier count to show
    progress against. Reaching
    ``abort_threshold`` stalls aborts, which is evaluated before convergence.

    Examples:
        >>> poller = ConvergencePoller(interval=30, abort_threshold=10)
        >>> result = await poller.poll(250, lambda: client.poll_completed(job_id))
        >>> result.outcome
        <PollOutcome.CONVERGED: 'converged'>
    """

    def __init__(
        self,
        interval: float,
        abort_threshold: int,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if abort_threshold < 1:
            raise ValueError("abort_threshold must be >= 1")
        self.interval = interval
        self.abort_threshold = abort_threshold
        self._sleep = sleep

    async def poll(
        self,
        expected_count: int,
        check: Callable[[], Awaitable[int]],
        label: str = "job",
    ) -> PollResult:
        """
        Poll until convergence or abort.

        Args:
            expected_count: Records the job must complete (must be > 0)
            check: Async callable returning the current completed count
            label: Name used in log lines

        Returns:
            PollResult with the outcome and last observed values
        """
        if expected_count <= 0:
            raise ValueError("expected_count must be > 0; empty feeds are never polled")

        previous: int | None = None
        stalls = 0
        iterations = 0

        while True:
            await self._sleep(self.interval)
            iterations += 1

            try:
                observed = await check()
            except Exception as e:
                stalls += 1
                logger.warning(f"{label}: status check {iterations} failed ({stalls}/{self.abort_threshold}): {e}")
            else:
                if previous is None:
                    # Nothing to compare the first count against yet
                    stalls += 1
                    previous = observed
                elif observed == previous:
                    stalls += 1
                else:
                    stalls = 0
                    previous = observed
                logger.info(
                    f"{label}: completed {observed}/{expected_count}, "
                    f"unchanged checks {stalls}/{self.abort_threshold}"
                )

            completed = previous if previous is not None else 0

            if stalls >= self.abort_threshold:
                logger.warning(
                    f"{label}: no progress after {stalls} consecutive checks, "
                    f"giving up at {completed}/{expected_count}"
                )
                return PollResult(PollOutcome.ABORTED, completed, stalls, iterations)

            if completed == expected_count:
                logger.info(f"{label}: all {expected_count} records completed after {iterations} checks")
                return PollResult(PollOutcome.CONVERGED, completed, stalls, iterations)
