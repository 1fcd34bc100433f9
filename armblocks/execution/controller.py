"""Host-side program controller.

Owns the editable :class:`Program`, the robot the program drives and at
most one active run. Checks run preconditions, cancels a previous run before
starting a new one, and turns engine faults into a :class:`RunResult` the
UI can present.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from armblocks.api.schemas import ExecutionState
from armblocks.control.effector import Effector
from armblocks.errors import (
    ConnectionLostError,
    ExecutionAbortedError,
    ExecutionLimitError,
    PreconditionError,
)
from armblocks.execution.config import ExecutionConfig
from armblocks.execution.engine import BlockExecutor
from armblocks.execution.token import RunToken
from armblocks.execution.types import RunPhase, RunResult
from armblocks.program.models import BlockInstance, Program

logger = logging.getLogger(__name__)

MSG_NO_BLOCKS = "Please add blocks to run the code."
MSG_NO_ROBOT = "Robot control functions not available."
MSG_NOT_CONNECTED = "Robot is not connected. Please connect first."
MSG_CONNECTION_LOST = "Robot connection lost during execution."
MSG_LIMIT = "Execution stopped for safety. Reduce loop counts or program size."
MSG_IMPORT_UNCONFIRMED = (
    "This program was imported from an external source. "
    "Only run it if you trust the source."
)


class ProgramController:
    """Runs a block program against a robot, one run at a time.

    Args:
        program: Block collection to edit and run. A new empty one if omitted.
        robot: Robot object bound via :meth:`Effector.from_robot`, or None.
        config: Engine pacing and budget settings.
    """

    def __init__(
        self,
        program: Program | None = None,
        robot: Any = None,
        *,
        config: ExecutionConfig | None = None,
    ) -> None:
        self.program = program if program is not None else Program()
        self.robot = robot
        self.config = config or ExecutionConfig()
        self.last_result: RunResult | None = None
        self.requires_trust_confirmation = False
        self._lock = asyncio.Lock()
        self._executor: BlockExecutor | None = None
        self._token: RunToken | None = None
        self._task: asyncio.Task[RunResult] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def phase(self) -> RunPhase:
        if self._executor is not None:
            return self._executor.phase
        return RunPhase.IDLE

    def get_state(self) -> ExecutionState:
        """Snapshot for the API."""
        token = self._executor.token if self._executor is not None else None
        last = self.last_result
        return ExecutionState(
            phase=self.phase.value,
            is_running=self.is_running,
            block_count=len(self.program),
            steps=token.steps if token is not None else 0,
            elapsed_ms=round(token.elapsed_s * 1000, 1) if token is not None else 0.0,
            last_error=last.error_message if last is not None else None,
            requires_trust_confirmation=self.requires_trust_confirmation,
        )

    def import_blocks(self, blocks: list[BlockInstance]) -> None:
        """Replace the program with blocks from an external source.

        The next run must be started with ``confirm_imported=True``.
        """
        self.program.blocks = list(blocks)
        self.requires_trust_confirmation = True
        logger.info("Program imported: %d block(s), awaiting trust confirmation", len(blocks))

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def validate_preconditions(
        self, *, simulate: bool = False, confirm_imported: bool = False
    ) -> None:
        """Check that a run can start.

        Raises:
            PreconditionError: With a user-facing message.
        """
        if len(self.program) == 0:
            raise PreconditionError(MSG_NO_BLOCKS)
        if self.robot is None:
            raise PreconditionError(MSG_NO_ROBOT)
        if not simulate and not getattr(self.robot, "is_connected", False):
            raise PreconditionError(MSG_NOT_CONNECTED)
        if self.requires_trust_confirmation and not confirm_imported:
            raise PreconditionError(MSG_IMPORT_UNCONFIRMED)

    async def run(
        self, *, simulate: bool = False, confirm_imported: bool = False
    ) -> RunResult:
        """Run the program to completion, abort, or fault.

        Any active run is stopped first.

        Raises:
            PreconditionError: If the run cannot start.
        """
        task = await self.start(simulate=simulate, confirm_imported=confirm_imported)
        return await task

    async def start(
        self, *, simulate: bool = False, confirm_imported: bool = False
    ) -> asyncio.Task[RunResult]:
        """Start the program in a background task and return the task.

        Start and stop are serialized, so concurrent callers never leave
        two runs driving the robot.

        Raises:
            PreconditionError: If the run cannot start.
        """
        async with self._lock:
            self.validate_preconditions(simulate=simulate, confirm_imported=confirm_imported)
            await self._stop_active()
            self.requires_trust_confirmation = False

            self._token = self.config.new_token()
            self._executor = BlockExecutor(
                list(self.program.blocks),
                Effector.from_robot(self.robot, simulate=simulate),
                self._token,
                config=self.config,
            )
            logger.info(
                "Starting program: %d block(s), simulate=%s",
                len(self.program),
                simulate,
            )
            self._task = asyncio.create_task(self._execute(self._executor))
            return self._task

    async def stop(self) -> None:
        """Abort the active run, if any, and wait for it to unwind."""
        async with self._lock:
            await self._stop_active()

    async def _stop_active(self) -> None:
        if self._token is not None:
            self._token.abort()
        if self._task is not None and not self._task.done():
            logger.info("Stopping active run")
            await asyncio.wait({self._task})
        self._token = None

    async def wait(self) -> RunResult | None:
        """Wait for the active run and return its result."""
        if self._task is None:
            return self.last_result
        return await asyncio.shield(self._task)

    async def _execute(self, executor: BlockExecutor) -> RunResult:
        start = time.monotonic()
        try:
            await executor.run()
            result = self._result(start, executor, success=True)
        except ExecutionAbortedError:
            logger.info("Execution was stopped by user")
            result = self._result(start, executor, kind="aborted")
        except ConnectionLostError:
            logger.error("Connection lost during run")
            result = self._result(
                start, executor, kind="connection_lost", message=MSG_CONNECTION_LOST
            )
        except ExecutionLimitError as exc:
            logger.error("Execution stopped by safety guard: %s", exc)
            result = self._result(start, executor, kind="limit", message=MSG_LIMIT)
        except Exception as exc:
            logger.exception("Error running program")
            result = self._result(
                start, executor, kind="error", message=f"Error running program: {exc}"
            )
        finally:
            if self._executor is executor:
                self._token = None

        self.last_result = result
        return result

    @staticmethod
    def _result(
        start: float,
        executor: BlockExecutor,
        *,
        success: bool = False,
        kind: str | None = None,
        message: str | None = None,
    ) -> RunResult:
        return RunResult(
            success=success,
            phase=executor.phase,
            duration_ms=(time.monotonic() - start) * 1000,
            steps=executor.token.steps,
            error_kind=kind,
            error_message=message,
        )
