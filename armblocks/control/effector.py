"""Effector capability interface.

The engine never talks to hardware directly. The host hands it an
:class:`Effector` bundling the async callables it may use; every capability
except ``move_joints`` is optional.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from armblocks.control.joint_limits import JointCommand

MoveJointsFn = Callable[[list[JointCommand]], Awaitable[None]]
ActionFn = Callable[[], Awaitable[None]]
ConnectedFn = Callable[[], bool]


@dataclass
class Effector:
    """Capabilities the execution engine calls through.

    Attributes:
        move_joints: Send servo targets.
        home: Move to the home pose, if supported.
        open_gripper: Open the gripper, if supported.
        close_gripper: Close the gripper, if supported.
        is_connected: Connectivity predicate. None disables connection
            checks (simulation runs).
    """

    move_joints: MoveJointsFn
    home: ActionFn | None = None
    open_gripper: ActionFn | None = None
    close_gripper: ActionFn | None = None
    is_connected: ConnectedFn | None = None

    @classmethod
    def from_robot(cls, robot: Any, *, simulate: bool = False) -> Effector:
        """Bind the capabilities of a robot object.

        Args:
            robot: Object with an async ``move_joints`` method, optional async
                ``home``/``open_gripper``/``close_gripper`` methods and an
                ``is_connected`` attribute.
            simulate: If True, connectivity is not checked during the run.
        """
        return cls(
            move_joints=robot.move_joints,
            home=getattr(robot, "home", None),
            open_gripper=getattr(robot, "open_gripper", None),
            close_gripper=getattr(robot, "close_gripper", None),
            is_connected=None if simulate else _connection_probe(robot),
        )


def _connection_probe(robot: Any) -> ConnectedFn:
    """Predicate reading ``robot.is_connected`` at call time."""

    def probe() -> bool:
        return bool(getattr(robot, "is_connected", False))

    return probe
