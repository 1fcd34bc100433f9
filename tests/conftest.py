"""Shared test fixtures for the ArmBlocks test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from armblocks.control.effector import Effector
from armblocks.execution.config import ExecutionConfig
from armblocks.hardware.mock import MockArm
from armblocks.program.models import BlockInstance, ChildSlot, ParameterValue

BlockFactory = Callable[..., BlockInstance]


@pytest.fixture()
def fast_config() -> ExecutionConfig:
    """Zero pacing delays so tests run at full speed."""
    return ExecutionConfig(
        inter_block_delay_ms=0,
        post_home_delay_ms=0,
        default_wait_ms=0,
    )


@pytest.fixture()
def arm() -> MockArm:
    return MockArm()


@pytest.fixture()
def effector(arm: MockArm) -> Effector:
    """Effector bound to the mock arm with connectivity checks enabled."""
    return Effector.from_robot(arm)


@pytest.fixture()
def make_block() -> BlockFactory:
    """Build a BlockInstance with a readable sequential id."""
    counter = iter(range(1, 10_000))

    def _make(
        definition_id: str,
        parameters: dict[str, ParameterValue] | None = None,
        parent: BlockInstance | None = None,
        slot: ChildSlot | None = None,
    ) -> BlockInstance:
        return BlockInstance(
            id=f"b{next(counter)}",
            definition_id=definition_id,
            parameters=parameters or {},
            parent_id=parent.id if parent is not None else None,
            child_slot=slot,
        )

    return _make
