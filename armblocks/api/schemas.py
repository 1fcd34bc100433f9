"""API request/response schemas.

All use camelCase aliases for JSON serialization, matching the editor's
block format.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from armblocks.program.models import ChildSlot, ParameterValue


class ExecutionState(BaseModel):
    """Controller state for the run-status display."""

    model_config = ConfigDict(populate_by_name=True)

    phase: str = "idle"
    is_running: bool = Field(False, alias="isRunning")
    block_count: int = Field(0, alias="blockCount")
    steps: int = 0
    elapsed_ms: float = Field(0, alias="elapsedMs")
    last_error: str | None = Field(None, alias="lastError")
    requires_trust_confirmation: bool = Field(False, alias="requiresTrustConfirmation")


# ------------------------------------------------------------------
# Program editing
# ------------------------------------------------------------------


class AddBlockRequest(BaseModel):
    """Request body for adding a block (top-level when ``parentId`` is absent)."""

    model_config = ConfigDict(populate_by_name=True)

    definition_id: str = Field(alias="definitionId")
    parameters: dict[str, ParameterValue] | None = None
    parent_id: str | None = Field(None, alias="parentId")
    child_slot: ChildSlot = Field("then", alias="childSlot")


class ParameterUpdate(BaseModel):
    """Request body for changing one block parameter."""

    name: str
    value: ParameterValue


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------


class RunRequest(BaseModel):
    """Request body for starting a run.

    ``confirmImported`` acknowledges that an imported program is trusted.
    """

    model_config = ConfigDict(populate_by_name=True)

    simulate: bool = False
    confirm_imported: bool = Field(False, alias="confirmImported")


class RunResultResponse(BaseModel):
    """Outcome of a finished run."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    phase: str
    duration_ms: float = Field(alias="durationMs")
    steps: int = 0
    error_kind: str | None = Field(None, alias="errorKind")
    error_message: str | None = Field(None, alias="errorMessage")
