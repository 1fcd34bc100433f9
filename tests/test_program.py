"""Unit tests for the block program model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from armblocks.errors import ProgramError
from armblocks.program.models import BlockInstance, ChildIndex, Program


def test_add_block_fills_defaults() -> None:
    program = Program()
    block = program.add_block("repeat")
    assert block.parameters == {"times": 3}
    assert block.parent_id is None
    assert program.top_level() == [block]


def test_explicit_parameters_override_defaults() -> None:
    program = Program()
    block = program.add_block("move_to", {"angle": 90})
    assert block.parameters == {"joint": "base", "angle": 90}


def test_ids_are_unique_and_frozen() -> None:
    program = Program()
    a = program.add_block("home_robot")
    b = program.add_block("home_robot")
    assert a.id != b.id
    with pytest.raises(ValidationError):
        a.id = "other"


def test_add_child_requires_existing_parent() -> None:
    program = Program()
    with pytest.raises(ProgramError):
        program.add_child("missing", "open_gripper")


def test_children_respect_slots() -> None:
    program = Program()
    branch = program.add_block("if_else")
    then_a = program.add_child(branch.id, "open_gripper")
    else_a = program.add_child(branch.id, "close_gripper", child_slot="else")
    then_b = program.add_child(branch.id, "home_robot", child_slot="then")

    assert program.children(branch.id) == [then_a, then_b]
    assert program.children(branch.id, "then") == [then_a, then_b]
    assert program.children(branch.id, "else") == [else_a]


def test_child_under_leaf_block_is_kept_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    program = Program()
    leaf = program.add_block("open_gripper")
    child = program.add_child(leaf.id, "home_robot")

    assert program.children(leaf.id) == [child]
    assert "does not run children" in caplog.text


def test_child_index_keeps_insertion_order() -> None:
    blocks = [
        BlockInstance(id="p", definition_id="repeat"),
        BlockInstance(id="c2", definition_id="home_robot", parent_id="p"),
        BlockInstance(id="t", definition_id="home_robot"),
        BlockInstance(id="c1", definition_id="home_robot", parent_id="p"),
    ]
    index = ChildIndex(blocks)
    assert [b.id for b in index.top_level()] == ["p", "t"]
    assert [b.id for b in index.children("p")] == ["c2", "c1"]
    assert index.children("t") == []


def test_update_parameter_mutates_in_place() -> None:
    program = Program()
    block = program.add_block("wait_seconds")
    program.update_parameter(block.id, "seconds", 2.5)
    assert block.parameters["seconds"] == 2.5


def test_remove_cascades_transitively() -> None:
    program = Program()
    outer = program.add_block("repeat")
    inner = program.add_child(outer.id, "if_condition")
    leaf = program.add_child(inner.id, "open_gripper")
    keep = program.add_block("home_robot")

    removed = program.remove_block(outer.id)

    assert set(removed) == {outer.id, inner.id, leaf.id}
    assert program.blocks == [keep]


def test_remove_unknown_block_raises() -> None:
    with pytest.raises(ProgramError):
        Program().remove_block("nope")


def test_json_uses_camel_case_aliases() -> None:
    program = Program()
    parent = program.add_block("if_else")
    program.add_child(parent.id, "close_gripper", child_slot="else")

    data = program.model_dump(by_alias=True)
    child = data["blocks"][1]
    assert child["definitionId"] == "close_gripper"
    assert child["parentId"] == parent.id
    assert child["childSlot"] == "else"

    restored = Program.model_validate_json(program.model_dump_json(by_alias=True))
    assert restored == program


def test_parameter_types_are_preserved() -> None:
    block = BlockInstance.model_validate(
        {"definitionId": "x", "parameters": {"a": True, "b": 3, "c": 1.5, "d": "3"}}
    )
    assert block.parameters == {"a": True, "b": 3, "c": 1.5, "d": "3"}
    assert isinstance(block.parameters["a"], bool)
    assert isinstance(block.parameters["d"], str)


# ------------------------------------------------------------------
# validate_tree
# ------------------------------------------------------------------


def test_validate_accepts_well_formed_tree() -> None:
    program = Program()
    outer = program.add_block("repeat")
    program.add_child(outer.id, "move_to")
    program.validate_tree()


def test_validate_rejects_cycles() -> None:
    program = Program(
        blocks=[
            BlockInstance(id="a", definition_id="repeat", parent_id="b"),
            BlockInstance(id="b", definition_id="repeat", parent_id="a"),
        ]
    )
    with pytest.raises(ProgramError, match="Cycle"):
        program.validate_tree()


def test_validate_rejects_dangling_parent() -> None:
    program = Program(blocks=[BlockInstance(id="a", definition_id="home_robot", parent_id="x")])
    with pytest.raises(ProgramError, match="missing parent"):
        program.validate_tree()


def test_validate_rejects_duplicate_ids() -> None:
    program = Program(
        blocks=[
            BlockInstance(id="a", definition_id="home_robot"),
            BlockInstance(id="a", definition_id="home_robot"),
        ]
    )
    with pytest.raises(ProgramError, match="Duplicate"):
        program.validate_tree()


def test_validate_rejects_excessive_depth() -> None:
    blocks = [BlockInstance(id="n0", definition_id="repeat")]
    for i in range(1, 5):
        blocks.append(BlockInstance(id=f"n{i}", definition_id="repeat", parent_id=f"n{i - 1}"))
    program = Program(blocks=blocks)

    program.validate_tree(max_depth=4)
    with pytest.raises(ProgramError, match="nested deeper"):
        program.validate_tree(max_depth=3)
