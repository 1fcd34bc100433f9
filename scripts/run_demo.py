"""Run a sample block program against the mock arm.

Usage:
    python scripts/run_demo.py                     # built-in sample program
    python scripts/run_demo.py --file prog.json    # program saved as {"blocks": [...]}
    python scripts/run_demo.py --fast              # no pacing delays

Logs every engine lifecycle line and prints the final servo angles.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from armblocks.execution.config import ExecutionConfig
from armblocks.execution.controller import ProgramController
from armblocks.hardware.mock import MockArm
from armblocks.program.models import BlockType, Program


def sample_program() -> Program:
    """Wave the base twice, then pick with the gripper."""
    program = Program()
    program.add_block(BlockType.HOME_ROBOT.value)
    loop = program.add_block(BlockType.REPEAT.value, {"times": 2})
    program.add_child(loop.id, BlockType.MOVE_TO.value, {"joint": "base", "angle": 90})
    program.add_child(loop.id, BlockType.MOVE_TO.value, {"joint": "base", "angle": 270})
    branch = program.add_block(BlockType.IF_ELSE.value, {"condition": True})
    program.add_child(branch.id, BlockType.OPEN_GRIPPER.value, child_slot="then")
    program.add_child(branch.id, BlockType.CLOSE_GRIPPER.value, child_slot="else")
    program.add_block(BlockType.WAIT_SECONDS.value, {"seconds": 0.5})
    program.add_block(BlockType.MOVE_TO.value, {"joint": "elbow", "angle": 400})
    program.add_block(BlockType.CLOSE_GRIPPER.value)
    return program


async def run(program: Program, config: ExecutionConfig) -> int:
    arm = MockArm(latency_s=0.05)
    controller = ProgramController(program, arm, config=config)
    result = await controller.run()

    print(f"\n  Phase:    {result.phase.value}")
    print(f"  Steps:    {result.steps}")
    print(f"  Duration: {result.duration_ms:.0f}ms")
    if result.error_message:
        print(f"  Error:    {result.error_message}")
    print(f"  Calls:    {', '.join(arm.call_names)}")
    print(f"  Servos:   {arm.positions}\n")
    return 0 if result.success else 1


def main() -> None:
    """Parse arguments and run the demo program."""
    parser = argparse.ArgumentParser(description="ArmBlocks mock-arm demo")
    parser.add_argument("--file", type=Path, help="Program JSON file")
    parser.add_argument("--fast", action="store_true", help="Disable pacing delays")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
    )

    program = Program.model_validate_json(args.file.read_text()) if args.file else sample_program()
    config = ExecutionConfig.from_env()
    if args.fast:
        config = config.model_copy(
            update={"inter_block_delay_ms": 0, "post_home_delay_ms": 0}
        )

    sys.exit(asyncio.run(run(program, config)))


if __name__ == "__main__":
    main()
