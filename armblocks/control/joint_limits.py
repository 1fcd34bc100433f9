"""Joint tables and the move-command translator.

Converts a ``move_to`` block's named joint and angle into a
:class:`JointCommand` that is safe to send to the servo bus. Angles are in
the servo domain (0-360 degrees, 180 is the neutral pose) and are always
clamped into the joint's mechanical range, whatever the program asks for.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from armblocks.program.models import BlockInstance, BlockType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JointCommand:
    """A single servo target.

    Attributes:
        servo_id: Bus id of the servo.
        value: Target angle in degrees, already clamped.
    """

    servo_id: int
    value: float


JOINT_TO_SERVO_ID: dict[str, int] = {
    "base": 1,
    "shoulder": 2,
    "elbow": 3,
    "wrist_flex": 4,
    "wrist_roll": 5,
    "gripper": 6,
}

# SO-101 URDF limits converted to the servo-angle domain:
# deg = rad * 180 / pi + 180
MOVE_JOINT_LIMITS: dict[str, tuple[float, float]] = {
    "base": (70.0, 290.0),  # [-1.91986, 1.91986] rad
    "shoulder": (80.0, 280.0),  # [-1.74533, 1.74533]
    "elbow": (80.0, 270.0),  # [-1.74533, 1.5708]
    "wrist_flex": (85.0, 275.0),  # [-1.65806, 1.65806]
    "wrist_roll": (23.0, 343.0),  # [-2.74385, 2.84121]
    "gripper": (170.0, 280.0),  # [-0.174533, 1.74533]
}

ANGLE_MIN: float = 0.0
ANGLE_MAX: float = 360.0


def get_move_joint_limits(joint: str | None) -> tuple[float, float]:
    """Return ``(min, max)`` degrees for *joint*, or the full servo range if unknown."""
    if not joint:
        return ANGLE_MIN, ANGLE_MAX
    return MOVE_JOINT_LIMITS.get(joint, (ANGLE_MIN, ANGLE_MAX))


def clamp_move_joint_angle(joint: str | None, angle: float) -> float:
    """Clamp *angle* into *joint*'s mechanical range."""
    lo, hi = get_move_joint_limits(joint)
    return max(lo, min(hi, angle))


def translate_move(block: BlockInstance) -> JointCommand | None:
    """Translate a ``move_to`` block into a clamped servo command.

    Args:
        block: Block whose ``joint`` and ``angle`` parameters are read.

    Returns:
        The command, or None when the joint is unknown or the angle is not
        a finite number. Nothing partial is ever produced.
    """
    joint = block.parameters.get("joint")
    angle = block.parameters.get("angle")

    servo_id = JOINT_TO_SERVO_ID.get(joint) if isinstance(joint, str) else None
    if servo_id is None:
        logger.debug("Skipping move on block %s: unknown joint %r", block.id, joint)
        return None
    if isinstance(angle, bool) or not isinstance(angle, (int, float)) or not math.isfinite(angle):
        logger.debug("Skipping move on block %s: invalid angle %r", block.id, angle)
        return None

    value = clamp_move_joint_angle(joint, float(angle))
    if value != angle:
        logger.debug("Clamped %s angle %s -> %s", joint, angle, value)
    return JointCommand(servo_id=servo_id, value=value)


def parse_blocks_for_commands(blocks: Iterable[BlockInstance]) -> list[JointCommand]:
    """Translate every ``move_to`` block in order, dropping the ones that skip."""
    commands: list[JointCommand] = []
    for block in blocks:
        if block.definition_id != BlockType.MOVE_TO.value:
            continue
        command = translate_move(block)
        if command is not None:
            commands.append(command)
    return commands
