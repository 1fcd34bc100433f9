"""Block execution engine.

Walks a block program depth-first, in program order, and turns it into
effector calls. Traversal keeps an explicit stack of frames, one async
generator per block list being executed. A control block's body generator
yields the child lists it wants run; the driver pushes a frame for each,
so nesting depth never grows the Python call stack.

Every block passes a checkpoint first (abort, connectivity, safety budget)
and is followed by a cancellable pacing delay. Faults unwind the whole run;
nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import sys
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Iterable
from contextlib import aclosing

from armblocks.control.effector import Effector
from armblocks.control.joint_limits import translate_move
from armblocks.errors import ConnectionLostError, ExecutionAbortedError, ExecutionLimitError
from armblocks.execution.config import ExecutionConfig
from armblocks.execution.token import RunToken
from armblocks.execution.types import RunPhase
from armblocks.program.models import BlockInstance, BlockType, ChildIndex, ParameterValue

logger = logging.getLogger(__name__)

ActionHandler = Callable[[BlockInstance], Awaitable[None]]
BodyHandler = Callable[[BlockInstance], AsyncIterator[list[BlockInstance]]]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


# ---------------------------------------------------------------------------
# Parameter coercion
# ---------------------------------------------------------------------------


def wait_duration_ms(value: ParameterValue | None, default_ms: float) -> float:
    """Milliseconds to wait for a ``seconds`` parameter.

    Numbers are used directly; strings are parsed from their leading number.
    Anything else, a non-finite number, or a string that yields zero falls
    back to *default_ms*. Negative durations wait zero.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return default_ms
        return max(0.0, value * 1000)
    if isinstance(value, str):
        match = _LEADING_FLOAT.match(value)
        seconds = float(match.group(1)) if match else 0.0
        if seconds:
            return max(0.0, seconds * 1000)
    return default_ms


def repeat_count(value: ParameterValue | None) -> int:
    """Iterations for a ``times`` parameter.

    A fractional count runs ``ceil(times)`` iterations and a non-positive one
    runs none. Strings use their leading integer; a string that does not
    parse, or parses to zero, counts as 1, as does any other value.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if math.isnan(value) or value <= 0:
            return 0
        if math.isinf(value):
            return sys.maxsize
        return math.ceil(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match and int(match.group(1)):
            return max(0, int(match.group(1)))
    return 1


def condition_is_true(value: ParameterValue | None) -> bool:
    """Truthiness of a ``condition`` parameter.

    Booleans as-is; ``"true"``/``"false"`` strings case-insensitively; other
    strings when non-empty; numbers when non-zero; missing is false.
    """
    if value is None:
        return False
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
        return bool(text)
    return bool(value)


def loop_condition_holds(value: ParameterValue | None) -> bool:
    """Whether a ``while_loop`` should run another iteration.

    Stricter than :func:`condition_is_true`: only ``True`` or the string
    ``"true"`` keep a loop going, so a stray number or label cannot spin it.
    """
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class BlockExecutor:
    """Interpreter for one run of one block program.

    Args:
        blocks: The full flat block list. Top-level blocks are those without
            a ``parent_id``.
        effector: Capabilities to call.
        token: Abort/budget token for this run. A fresh one is made from
            *config* when omitted.
        config: Pacing and budget settings.
        log: Logger for lifecycle lines; defaults to this module's logger.
    """

    def __init__(
        self,
        blocks: Iterable[BlockInstance],
        effector: Effector,
        token: RunToken | None = None,
        *,
        config: ExecutionConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._config = config or ExecutionConfig()
        self._token = token if token is not None else self._config.new_token()
        self._effector = effector
        self._log = log or logger
        self._index = ChildIndex(blocks)
        self.phase = RunPhase.IDLE

        self._actions: dict[str, ActionHandler] = {
            BlockType.HOME_ROBOT.value: self._home_robot,
            BlockType.MOVE_TO.value: self._move_to,
            BlockType.OPEN_GRIPPER.value: self._open_gripper,
            BlockType.CLOSE_GRIPPER.value: self._close_gripper,
            BlockType.WAIT_SECONDS.value: self._wait_seconds,
        }
        self._bodies: dict[str, BodyHandler] = {
            BlockType.REPEAT.value: self._repeat,
            BlockType.IF_CONDITION.value: self._if_condition,
            BlockType.IF_ELSE.value: self._if_else,
            BlockType.WHILE_LOOP.value: self._while_loop,
        }

    @property
    def token(self) -> RunToken:
        return self._token

    async def run(self) -> None:
        """Home the robot, then execute every top-level block.

        Raises:
            ExecutionAbortedError: The token was aborted.
            ConnectionLostError: The connectivity predicate went false.
            ExecutionLimitError: The step or time budget ran out.
            RuntimeError: If this executor has already run.
            Exception: Anything an effector raised, unchanged.
        """
        if self.phase is not RunPhase.IDLE:
            raise RuntimeError("BlockExecutor instances run once")

        self._token.start()
        try:
            self._checkpoint()
            if self._effector.home is not None:
                self.phase = RunPhase.HOMING
                self._log.info("Homing robot before program execution")
                await self._effector.home()
                await self._token.delay(self._config.post_home_delay_ms)
            self.phase = RunPhase.RUNNING
            await self._drive(self._index.top_level())
        except ExecutionAbortedError:
            self.phase = RunPhase.ABORTED
            self._log.info("Run aborted by user after %d step(s)", self._token.steps)
            raise
        except asyncio.CancelledError:
            self.phase = RunPhase.ABORTED
            raise
        except ConnectionLostError:
            self.phase = RunPhase.FAULTED
            self._log.warning("Robot connection lost after %d step(s)", self._token.steps)
            raise
        except ExecutionLimitError as exc:
            self.phase = RunPhase.FAULTED
            self._log.warning(
                "Safety limit triggered: %s (steps=%d, elapsed=%.1fs)",
                exc,
                exc.steps,
                exc.elapsed_s,
            )
            raise
        except Exception:
            self.phase = RunPhase.FAULTED
            raise

        self.phase = RunPhase.COMPLETED
        self._log.info(
            "Program completed: %d step(s) in %.1fs",
            self._token.steps,
            self._token.elapsed_s,
        )

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def _drive(self, blocks: list[BlockInstance]) -> None:
        """Run *blocks* and everything nested under them, using an explicit stack."""
        stack: list[AsyncGenerator[list[BlockInstance], None]] = [self._sequence(blocks)]
        try:
            while stack:
                try:
                    children = await stack[-1].__anext__()
                except StopAsyncIteration:
                    stack.pop()
                    continue
                stack.append(self._sequence(children))
        finally:
            for frame in reversed(stack):
                await frame.aclose()

    async def _sequence(
        self, blocks: list[BlockInstance]
    ) -> AsyncGenerator[list[BlockInstance], None]:
        """Execute one block list, yielding child lists for the driver to run."""
        for block in blocks:
            self._checkpoint()
            self._token.charge_step()

            body = self._bodies.get(block.definition_id)
            if body is not None:
                async with aclosing(body(block)) as child_lists:
                    async for children in child_lists:
                        yield children
            else:
                action = self._actions.get(block.definition_id, self._skip_unknown)
                await action(block)

            await self._token.delay(self._config.inter_block_delay_ms)

    def _checkpoint(self) -> None:
        self._token.check_aborted()
        probe = self._effector.is_connected
        if probe is not None and not probe():
            raise ConnectionLostError()

    # ------------------------------------------------------------------
    # Leaf blocks
    # ------------------------------------------------------------------

    async def _home_robot(self, block: BlockInstance) -> None:
        if self._effector.home is not None:
            await self._effector.home()

    async def _move_to(self, block: BlockInstance) -> None:
        command = translate_move(block)
        if command is None:
            return
        await self._effector.move_joints([command])

    async def _open_gripper(self, block: BlockInstance) -> None:
        if self._effector.open_gripper is not None:
            await self._effector.open_gripper()

    async def _close_gripper(self, block: BlockInstance) -> None:
        if self._effector.close_gripper is not None:
            await self._effector.close_gripper()

    async def _wait_seconds(self, block: BlockInstance) -> None:
        ms = wait_duration_ms(block.parameters.get("seconds"), self._config.default_wait_ms)
        await self._token.delay(ms)

    async def _skip_unknown(self, block: BlockInstance) -> None:
        self._log.debug("Skipping unknown block type %r (%s)", block.definition_id, block.id)

    # ------------------------------------------------------------------
    # Control blocks
    # ------------------------------------------------------------------

    async def _repeat(self, block: BlockInstance) -> AsyncIterator[list[BlockInstance]]:
        times = repeat_count(block.parameters.get("times"))
        for _ in range(times):
            self._checkpoint()
            self._token.charge_step()
            yield self._index.children(block.id)

    async def _if_condition(self, block: BlockInstance) -> AsyncIterator[list[BlockInstance]]:
        if condition_is_true(block.parameters.get("condition")):
            yield self._index.children(block.id)

    async def _if_else(self, block: BlockInstance) -> AsyncIterator[list[BlockInstance]]:
        slot = "then" if condition_is_true(block.parameters.get("condition")) else "else"
        yield self._index.children(block.id, slot)

    async def _while_loop(self, block: BlockInstance) -> AsyncIterator[list[BlockInstance]]:
        # Re-read every iteration so edits to the condition take effect.
        while loop_condition_holds(block.parameters.get("condition")):
            self._checkpoint()
            self._token.charge_step()
            yield self._index.children(block.id)
            await self._token.delay(self._config.inter_block_delay_ms)


async def execute_blocks(
    blocks: Iterable[BlockInstance],
    effector: Effector,
    token: RunToken | None = None,
    *,
    config: ExecutionConfig | None = None,
    log: logging.Logger | None = None,
) -> None:
    """Execute a block program once. See :class:`BlockExecutor`."""
    await BlockExecutor(blocks, effector, token, config=config, log=log).run()
