"""Execution control routes.

Manages a single ProgramController instance driving a MockArm (the servo
transport is external to this package, so the mock stands in for it).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from armblocks.api.schemas import ExecutionState, RunRequest, RunResultResponse
from armblocks.errors import PreconditionError
from armblocks.execution.config import ExecutionConfig
from armblocks.execution.controller import ProgramController
from armblocks.hardware.mock import MockArm

logger = logging.getLogger(__name__)

router = APIRouter()

# Module-level singleton: one program and one active run at a time.
_controller: ProgramController | None = None


# ------------------------------------------------------------------
# Public accessors (used by program routes and tests)
# ------------------------------------------------------------------


def get_controller() -> ProgramController:
    """Return the shared controller, creating it on first use."""
    global _controller  # noqa: PLW0603
    if _controller is None:
        _controller = ProgramController(robot=MockArm(), config=ExecutionConfig.from_env())
    return _controller


def reset_controller(controller: ProgramController | None = None) -> None:
    """Replace the shared controller (None recreates it lazily)."""
    global _controller  # noqa: PLW0603
    _controller = controller


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


@router.post("/run")
async def start_run(request: RunRequest) -> dict[str, str]:
    """Start running the program in the background.

    Any active run is stopped first.
    """
    controller = get_controller()
    try:
        await controller.start(
            simulate=request.simulate, confirm_imported=request.confirm_imported
        )
    except PreconditionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "ok"}


@router.post("/stop")
async def stop_run() -> dict[str, str]:
    """Stop the active run, if any."""
    await get_controller().stop()
    return {"status": "ok"}


@router.get("/state", response_model=ExecutionState)
async def get_execution_state() -> ExecutionState:
    """Return the current run state."""
    return get_controller().get_state()


@router.get("/result")
async def get_last_result() -> dict[str, Any]:
    """Return the outcome of the most recent finished run."""
    result = get_controller().last_result
    if result is None:
        raise HTTPException(status_code=404, detail="No run has finished yet")
    response = RunResultResponse(
        success=result.success,
        phase=result.phase.value,
        duration_ms=result.duration_ms,
        steps=result.steps,
        error_kind=result.error_kind,
        error_message=result.error_message,
    )
    return response.model_dump(by_alias=True)


@router.get("/robot")
async def get_robot_state() -> dict[str, Any]:
    """Return the simulated arm's connection state and servo angles."""
    robot = get_controller().robot
    if not isinstance(robot, MockArm):
        raise HTTPException(status_code=501, detail="Robot state only available for the mock arm")
    return robot.snapshot()
