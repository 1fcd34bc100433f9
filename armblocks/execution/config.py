"""Execution timing and safety-budget configuration."""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict, Field

from armblocks.execution.token import RunToken

logger = logging.getLogger(__name__)

ENV_PREFIX = "ARMBLOCKS_"


class ExecutionConfig(BaseModel):
    """Engine pacing and runaway-guard settings.

    Attributes:
        inter_block_delay_ms: Pause after every executed block (ms).
        post_home_delay_ms: Settle time after the homing preamble (ms).
        default_wait_ms: Wait used when a wait block's seconds don't parse (ms).
        max_steps: Steps one run may charge before it is stopped.
        max_duration_s: Wall-clock seconds one run may take before it is stopped.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    inter_block_delay_ms: float = Field(500.0, ge=0, alias="interBlockDelayMs")
    post_home_delay_ms: float = Field(1000.0, ge=0, alias="postHomeDelayMs")
    default_wait_ms: float = Field(1000.0, ge=0, alias="defaultWaitMs")
    max_steps: int = Field(10_000, ge=1, alias="maxSteps")
    max_duration_s: float = Field(300.0, gt=0, alias="maxDurationS")

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> ExecutionConfig:
        """Build a config, overriding defaults from ``{prefix}{FIELD_NAME}`` env vars.

        Example: ``ARMBLOCKS_INTER_BLOCK_DELAY_MS=250``.

        Raises:
            pydantic.ValidationError: If an override is not a valid value.
        """
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{prefix}{name.upper()}")
            if raw is not None:
                overrides[name] = raw
        if overrides:
            logger.info("Execution config overrides from environment: %s", overrides)
        return cls.model_validate(overrides)

    def new_token(self) -> RunToken:
        """Create a run token carrying this config's safety budget."""
        return RunToken(max_steps=self.max_steps, max_duration_s=self.max_duration_s)
