"""Run token: abort signal plus the runaway-execution budget for one run."""

from __future__ import annotations

import asyncio
import time

from armblocks.errors import ExecutionAbortedError, ExecutionLimitError

DEFAULT_MAX_STEPS = 10_000
DEFAULT_MAX_DURATION_S = 300.0


class RunToken:
    """Cancellation and safety-budget context for a single program run.

    One token per run. ``abort()`` may be called from any coroutine or from
    synchronous code running on the event loop; every pending :meth:`delay`
    wakes up and raises :class:`ExecutionAbortedError` immediately.

    Args:
        max_steps: Steps the run may charge before :class:`ExecutionLimitError`.
        max_duration_s: Wall-clock budget in seconds, counted from :meth:`start`.
    """

    def __init__(
        self,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_duration_s: float = DEFAULT_MAX_DURATION_S,
    ) -> None:
        self.max_steps = max_steps
        self.max_duration_s = max_duration_s
        self._aborted = asyncio.Event()
        self._steps = 0
        self._started_at: float | None = None

    # ------------------------------------------------------------------
    # Abort
    # ------------------------------------------------------------------

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def abort(self) -> None:
        """Request the run to stop. Idempotent."""
        self._aborted.set()

    def check_aborted(self) -> None:
        if self._aborted.is_set():
            raise ExecutionAbortedError()

    async def delay(self, ms: float) -> None:
        """Sleep for *ms* milliseconds unless the token is aborted first.

        Once the wall clock is running, the sleep is cut short at the end of
        the time budget.

        Raises:
            ExecutionAbortedError: If the token is (or becomes) aborted.
            ExecutionLimitError: If the time budget runs out during the sleep.
        """
        self.check_aborted()
        if ms <= 0:
            await asyncio.sleep(0)
            self.check_aborted()
            return
        timeout = ms / 1000
        remaining = self.remaining_s
        capped = False
        if remaining is not None and remaining < timeout:
            timeout = max(0.0, remaining)
            capped = True
        try:
            await asyncio.wait_for(self._aborted.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            if capped:
                raise self._time_limit_error() from None
            return
        raise ExecutionAbortedError()

    # ------------------------------------------------------------------
    # Runaway guard
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the wall clock. Later calls keep the first start time."""
        if self._started_at is None:
            self._started_at = time.monotonic()

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def elapsed_s(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    @property
    def remaining_s(self) -> float | None:
        """Seconds left in the time budget, or None before :meth:`start`."""
        if self._started_at is None:
            return None
        return self.max_duration_s - self.elapsed_s

    def charge_step(self) -> None:
        """Count one step and enforce the budget.

        Raises:
            ExecutionLimitError: If the step or time budget is exhausted.
        """
        self.start()
        self._steps += 1
        elapsed = self.elapsed_s
        if self._steps > self.max_steps:
            raise ExecutionLimitError(
                f"Step limit of {self.max_steps} exceeded",
                steps=self._steps,
                elapsed_s=elapsed,
            )
        if elapsed > self.max_duration_s:
            raise self._time_limit_error()

    def _time_limit_error(self) -> ExecutionLimitError:
        return ExecutionLimitError(
            f"Time limit of {self.max_duration_s:g}s exceeded",
            steps=self._steps,
            elapsed_s=self.elapsed_s,
        )
