"""Mock arm for hardware-free runs and tests.

Provides MockArm, an in-memory six-servo arm that satisfies the robot
interface :meth:`armblocks.control.effector.Effector.from_robot` binds.
Used by the API (real servo transport is not part of this package) and by
the test suite to observe the exact sequence of effector calls.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from armblocks.control.joint_limits import JOINT_TO_SERVO_ID, JointCommand

logger = logging.getLogger(__name__)

MOCK_SERVO_IDS: list[int] = sorted(JOINT_TO_SERVO_ID.values())

# Neutral pose in the servo-angle domain.
HOME_ANGLE: float = 180.0

GRIPPER_SERVO_ID: int = JOINT_TO_SERVO_ID["gripper"]
GRIPPER_OPEN_ANGLE: float = 270.0
GRIPPER_CLOSE_ANGLE: float = 180.0


@dataclass
class ArmCall:
    """One recorded effector call.

    Attributes:
        name: Capability name ("move_joints", "home", ...).
        args: Servo commands for move_joints, empty otherwise.
    """

    name: str
    args: list[JointCommand] = field(default_factory=list)


class MockArm:
    """Fake arm that obeys commands instantly (or after ``latency_s``).

    Args:
        latency_s: Simulated duration of every call.
        connected: Initial connection state.
    """

    def __init__(self, latency_s: float = 0.0, connected: bool = True) -> None:
        self.latency_s = latency_s
        self.is_connected: bool = connected
        self.positions: dict[int, float] = {sid: HOME_ANGLE for sid in MOCK_SERVO_IDS}
        self.calls: list[ArmCall] = []
        self.fail_on: str | None = None

    # -- capabilities ----------------------------------------------------

    async def move_joints(self, commands: list[JointCommand]) -> None:
        """Record and apply servo targets."""
        await self._call("move_joints", list(commands))
        for command in commands:
            self.positions[command.servo_id] = command.value

    async def home(self) -> None:
        """Return every servo to the neutral pose."""
        await self._call("home")
        for sid in self.positions:
            self.positions[sid] = HOME_ANGLE

    async def open_gripper(self) -> None:
        await self._call("open_gripper")
        self.positions[GRIPPER_SERVO_ID] = GRIPPER_OPEN_ANGLE

    async def close_gripper(self) -> None:
        await self._call("close_gripper")
        self.positions[GRIPPER_SERVO_ID] = GRIPPER_CLOSE_ANGLE

    # -- helpers ---------------------------------------------------------

    @property
    def call_names(self) -> list[str]:
        return [c.name for c in self.calls]

    def moves(self) -> list[JointCommand]:
        """All servo commands sent so far, flattened in order."""
        return [cmd for c in self.calls if c.name == "move_joints" for cmd in c.args]

    def disconnect(self) -> None:
        """Mark as disconnected."""
        self.is_connected = False
        logger.info("MockArm disconnected")

    def snapshot(self) -> dict[str, Any]:
        return {
            "connected": self.is_connected,
            "positions": dict(self.positions),
            "calls": len(self.calls),
        }

    async def _call(self, name: str, args: list[JointCommand] | None = None) -> None:
        if self.fail_on == name:
            raise RuntimeError(f"MockArm: simulated {name} failure")
        self.calls.append(ArmCall(name=name, args=args or []))
        logger.debug("MockArm %s %s", name, args or "")
        if self.latency_s > 0:
            await asyncio.sleep(self.latency_s)
