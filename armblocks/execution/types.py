"""Execution layer type definitions.

Shared types used by the engine and the host controller.
Defined separately to avoid circular imports between modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RunPhase(str, Enum):
    """Lifecycle of one program run. There is no paused state."""

    IDLE = "idle"
    HOMING = "homing"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAULTED = "faulted"


@dataclass
class RunResult:
    """Outcome of a program run as seen by the host controller.

    Attributes:
        success: Whether the program ran to completion.
        phase: Terminal phase of the run.
        duration_ms: Wall-clock time of the run in milliseconds.
        steps: Steps charged against the safety budget.
        error_kind: ``"aborted"``, ``"connection_lost"``, ``"limit"``,
            ``"error"``, or None on success.
        error_message: User-facing description of the failure, if any.
    """

    success: bool
    phase: RunPhase
    duration_ms: float
    steps: int = 0
    error_kind: str | None = None
    error_message: str | None = None
