"""Exception hierarchy for ArmBlocks.

The three run-time faults (:class:`ExecutionAbortedError`,
:class:`ConnectionLostError`, :class:`ExecutionLimitError`) unwind a whole
program run. They are never retried by the engine; the host controller
decides what to show the user.
"""

from __future__ import annotations


class ArmBlocksError(Exception):
    """Base class for all ArmBlocks errors."""


class ProgramError(ArmBlocksError):
    """Invalid block program or program-model operation."""


class PreconditionError(ArmBlocksError):
    """A run was requested that the host controller cannot start."""


class ExecutionError(ArmBlocksError):
    """Base class for faults raised while a program is running."""

    default_message = "Execution failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ExecutionAbortedError(ExecutionError):
    """The run token was aborted by the user or the controller."""

    default_message = "Execution was aborted"


class ConnectionLostError(ExecutionError):
    """The robot reported itself disconnected mid-run."""

    default_message = "Robot connection lost during execution"


class ExecutionLimitError(ExecutionError):
    """The run exhausted its step or wall-clock budget.

    Attributes:
        steps: Steps charged when the limit was hit.
        elapsed_s: Wall-clock seconds since the run started.
    """

    default_message = "Execution stopped due to safety limits"

    def __init__(
        self,
        message: str | None = None,
        *,
        steps: int = 0,
        elapsed_s: float = 0.0,
    ) -> None:
        super().__init__(message)
        self.steps = steps
        self.elapsed_s = elapsed_s
