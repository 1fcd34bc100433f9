"""Block program data model.

A program is a flat list of :class:`BlockInstance` objects. Nesting is
encoded with ``parent_id`` back-references (plus ``child_slot`` for the two
branches of an if/else), never with nested child lists. All models use
camelCase aliases so they serialize the same way the editor stores them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from armblocks.errors import ProgramError

logger = logging.getLogger(__name__)

ParameterValue = bool | int | float | str
ChildSlot = Literal["then", "else"]

# Deepest nesting accepted by Program.validate().
MAX_NESTING_DEPTH = 32


class BlockType(str, Enum):
    """Block definition ids understood by the execution engine."""

    MOVE_TO = "move_to"
    WAIT_SECONDS = "wait_seconds"
    REPEAT = "repeat"
    IF_CONDITION = "if_condition"
    IF_ELSE = "if_else"
    WHILE_LOOP = "while_loop"
    OPEN_GRIPPER = "open_gripper"
    CLOSE_GRIPPER = "close_gripper"
    HOME_ROBOT = "home_robot"


CONTROL_BLOCKS: frozenset[str] = frozenset(
    {
        BlockType.REPEAT.value,
        BlockType.IF_CONDITION.value,
        BlockType.IF_ELSE.value,
        BlockType.WHILE_LOOP.value,
    }
)

DEFAULT_PARAMETERS: dict[str, dict[str, ParameterValue]] = {
    BlockType.MOVE_TO.value: {"joint": "base", "angle": 0},
    BlockType.WAIT_SECONDS.value: {"seconds": 1},
    BlockType.REPEAT.value: {"times": 3},
    BlockType.IF_CONDITION.value: {"condition": True},
    BlockType.IF_ELSE.value: {"condition": True},
    BlockType.WHILE_LOOP.value: {"condition": True},
}


def new_block_id() -> str:
    """Return a fresh opaque block id."""
    return f"block_{uuid.uuid4().hex[:12]}"


class BlockInstance(BaseModel):
    """One node of a block program.

    Attributes:
        id: Opaque unique identifier, fixed at creation.
        definition_id: Block type. Unknown values are kept so programs written
            for newer block sets still load; the engine skips them.
        parameters: Parameter values keyed by name.
        parent_id: Enclosing control block, or None for top-level blocks.
        child_slot: Branch of an if/else parent. None means "then".
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_block_id, frozen=True)
    definition_id: str = Field(alias="definitionId")
    parameters: dict[str, ParameterValue] = Field(default_factory=dict)
    parent_id: str | None = Field(None, alias="parentId")
    child_slot: ChildSlot | None = Field(None, alias="childSlot")

    @property
    def is_control(self) -> bool:
        return self.definition_id in CONTROL_BLOCKS

    def in_slot(self, slot: ChildSlot | None) -> bool:
        """Whether this block belongs to *slot* of its parent.

        ``None`` selects every non-else child (single-branch parents);
        ``"then"`` also accepts blocks without a slot.
        """
        if slot == "else":
            return self.child_slot == "else"
        return self.child_slot != "else"


class ChildIndex:
    """``parent_id -> children`` adjacency index over a flat block list.

    Built once per run. Children keep the order they have in the list.
    """

    def __init__(self, blocks: Iterable[BlockInstance]) -> None:
        self._children: dict[str | None, list[BlockInstance]] = {}
        for block in blocks:
            self._children.setdefault(block.parent_id, []).append(block)

    def top_level(self) -> list[BlockInstance]:
        return list(self._children.get(None, []))

    def children(self, parent_id: str, slot: ChildSlot | None = None) -> list[BlockInstance]:
        """Direct children of *parent_id* in *slot* (see :meth:`BlockInstance.in_slot`)."""
        return [b for b in self._children.get(parent_id, []) if b.in_slot(slot)]


class Program(BaseModel):
    """The flat, editable block collection owned by the host controller."""

    model_config = ConfigDict(populate_by_name=True)

    blocks: list[BlockInstance] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.blocks)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, block_id: str) -> BlockInstance:
        """Return the block with *block_id*.

        Raises:
            ProgramError: If no such block exists.
        """
        for block in self.blocks:
            if block.id == block_id:
                return block
        raise ProgramError(f"Unknown block: {block_id}")

    def top_level(self) -> list[BlockInstance]:
        return [b for b in self.blocks if b.parent_id is None]

    def children(self, parent_id: str, slot: ChildSlot | None = None) -> list[BlockInstance]:
        return ChildIndex(self.blocks).children(parent_id, slot)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_block(
        self,
        definition_id: str,
        parameters: dict[str, ParameterValue] | None = None,
    ) -> BlockInstance:
        """Append a top-level block, filling in default parameters."""
        block = BlockInstance(
            definition_id=definition_id,
            parameters=_with_defaults(definition_id, parameters),
        )
        self.blocks.append(block)
        logger.debug("Added block %s (%s)", block.id, definition_id)
        return block

    def add_child(
        self,
        parent_id: str,
        definition_id: str,
        parameters: dict[str, ParameterValue] | None = None,
        child_slot: ChildSlot = "then",
    ) -> BlockInstance:
        """Append a child block under *parent_id*.

        Raises:
            ProgramError: If the parent does not exist.
        """
        parent = self.get(parent_id)
        if not parent.is_control:
            logger.warning(
                "Block %s (%s) does not run children; %s will be ignored",
                parent_id,
                parent.definition_id,
                definition_id,
            )
        block = BlockInstance(
            definition_id=definition_id,
            parameters=_with_defaults(definition_id, parameters),
            parent_id=parent_id,
            child_slot=child_slot,
        )
        self.blocks.append(block)
        logger.debug(
            "Added child %s (%s) under %s/%s", block.id, definition_id, parent_id, child_slot
        )
        return block

    def update_parameter(self, block_id: str, name: str, value: ParameterValue) -> None:
        """Set one parameter of a block in place."""
        self.get(block_id).parameters[name] = value

    def remove_block(self, block_id: str) -> list[str]:
        """Remove a block and, transitively, every block nested under it.

        Returns:
            Ids of all removed blocks.

        Raises:
            ProgramError: If the block does not exist.
        """
        self.get(block_id)
        doomed = {block_id}
        changed = True
        while changed:
            changed = False
            for block in self.blocks:
                if block.parent_id in doomed and block.id not in doomed:
                    doomed.add(block.id)
                    changed = True

        removed = [b.id for b in self.blocks if b.id in doomed]
        self.blocks = [b for b in self.blocks if b.id not in doomed]
        logger.debug("Removed %d block(s) rooted at %s", len(removed), block_id)
        return removed

    def clear(self) -> None:
        self.blocks = []

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_tree(self, max_depth: int = MAX_NESTING_DEPTH) -> None:
        """Check the parent graph: unique ids, no dangling parents, no cycles,
        nesting no deeper than *max_depth*.

        Raises:
            ProgramError: Describing the first problem found.
        """
        by_id: dict[str, BlockInstance] = {}
        for block in self.blocks:
            if block.id in by_id:
                raise ProgramError(f"Duplicate block id: {block.id}")
            by_id[block.id] = block

        for block in self.blocks:
            depth = 0
            seen = {block.id}
            parent_id = block.parent_id
            while parent_id is not None:
                parent = by_id.get(parent_id)
                if parent is None:
                    raise ProgramError(f"Block {block.id} references missing parent {parent_id}")
                if parent.id in seen:
                    raise ProgramError(f"Cycle detected at block {block.id}")
                seen.add(parent.id)
                depth += 1
                if depth > max_depth:
                    raise ProgramError(f"Block {block.id} is nested deeper than {max_depth} levels")
                parent_id = parent.parent_id


def _with_defaults(
    definition_id: str,
    parameters: dict[str, ParameterValue] | None,
) -> dict[str, ParameterValue]:
    merged = dict(DEFAULT_PARAMETERS.get(definition_id, {}))
    merged.update(parameters or {})
    return merged
