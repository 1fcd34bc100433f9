"""Program editing routes.

Edit the block program held by the shared controller. Edits are refused
while a run is active so a running program never changes under the engine.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from armblocks.api.routes.execution import get_controller
from armblocks.api.schemas import AddBlockRequest, ParameterUpdate
from armblocks.errors import ProgramError
from armblocks.program.models import Program

logger = logging.getLogger(__name__)

router = APIRouter()


def _editable_program() -> Program:
    controller = get_controller()
    if controller.is_running:
        raise HTTPException(status_code=409, detail="Program is running")
    return controller.program


@router.get("")
async def get_program() -> dict[str, Any]:
    """Return the full block list."""
    return get_controller().program.model_dump(by_alias=True)


@router.put("")
async def replace_program(program: Program) -> dict[str, Any]:
    """Import a whole program, validating the block tree.

    The next run must confirm that the imported program is trusted.
    """
    _editable_program()
    try:
        program.validate_tree()
    except ProgramError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    get_controller().import_blocks(program.blocks)
    return {"status": "ok", "blockCount": len(program)}


@router.delete("")
async def clear_program() -> dict[str, str]:
    """Remove every block."""
    _editable_program().clear()
    logger.info("Program cleared")
    return {"status": "ok"}


@router.post("/blocks", status_code=201)
async def add_block(request: AddBlockRequest) -> dict[str, Any]:
    """Add a top-level or child block."""
    program = _editable_program()
    if request.parent_id is None:
        block = program.add_block(request.definition_id, request.parameters)
    else:
        try:
            block = program.add_child(
                request.parent_id,
                request.definition_id,
                request.parameters,
                child_slot=request.child_slot,
            )
        except ProgramError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
    return block.model_dump(by_alias=True)


@router.patch("/blocks/{block_id}/parameters")
async def update_parameter(block_id: str, update: ParameterUpdate) -> dict[str, Any]:
    """Set one parameter of a block."""
    program = _editable_program()
    try:
        program.update_parameter(block_id, update.name, update.value)
    except ProgramError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return program.get(block_id).model_dump(by_alias=True)


@router.delete("/blocks/{block_id}")
async def remove_block(block_id: str) -> dict[str, Any]:
    """Remove a block and everything nested under it."""
    program = _editable_program()
    try:
        removed = program.remove_block(block_id)
    except ProgramError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"status": "ok", "removed": removed}
