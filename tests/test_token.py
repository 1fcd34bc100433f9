"""Unit tests for the run token and execution config."""

from __future__ import annotations

import asyncio
import time

import pytest
from pydantic import ValidationError

from armblocks.errors import ExecutionAbortedError, ExecutionLimitError
from armblocks.execution.config import ExecutionConfig
from armblocks.execution.token import RunToken


async def test_delay_completes_when_not_aborted() -> None:
    token = RunToken()
    start = time.monotonic()
    await token.delay(20)
    assert time.monotonic() - start >= 0.015


async def test_delay_raises_immediately_if_already_aborted() -> None:
    token = RunToken()
    token.abort()
    with pytest.raises(ExecutionAbortedError):
        await token.delay(10_000)


async def test_abort_interrupts_pending_delay() -> None:
    token = RunToken()
    loop = asyncio.get_running_loop()
    loop.call_later(0.02, token.abort)

    start = time.monotonic()
    with pytest.raises(ExecutionAbortedError):
        await token.delay(5_000)
    assert time.monotonic() - start < 1.0


async def test_zero_delay_still_checks_abort() -> None:
    token = RunToken()
    await token.delay(0)
    token.abort()
    with pytest.raises(ExecutionAbortedError):
        await token.delay(0)


async def test_delay_is_capped_by_time_budget() -> None:
    token = RunToken(max_duration_s=0.05)
    token.start()

    start = time.monotonic()
    with pytest.raises(ExecutionLimitError, match="Time limit"):
        await token.delay(10_000)
    assert time.monotonic() - start < 1.0


async def test_delay_within_budget_is_not_cut() -> None:
    token = RunToken(max_duration_s=5)
    token.start()
    await token.delay(20)
    assert token.remaining_s is not None and token.remaining_s < 5


def test_abort_is_idempotent() -> None:
    token = RunToken()
    token.abort()
    token.abort()
    assert token.aborted
    with pytest.raises(ExecutionAbortedError):
        token.check_aborted()


def test_step_budget() -> None:
    token = RunToken(max_steps=3)
    for _ in range(3):
        token.charge_step()
    with pytest.raises(ExecutionLimitError) as info:
        token.charge_step()
    assert info.value.steps == 4
    assert token.steps == 4


def test_time_budget() -> None:
    token = RunToken(max_steps=1_000, max_duration_s=0.01)
    token.start()
    time.sleep(0.02)
    with pytest.raises(ExecutionLimitError, match="Time limit"):
        token.charge_step()


def test_elapsed_is_zero_before_start() -> None:
    token = RunToken()
    assert token.elapsed_s == 0.0
    token.start()
    assert token.elapsed_s >= 0.0


# ------------------------------------------------------------------
# ExecutionConfig
# ------------------------------------------------------------------


def test_config_defaults() -> None:
    config = ExecutionConfig()
    assert config.inter_block_delay_ms == 500
    assert config.post_home_delay_ms == 1000
    assert config.default_wait_ms == 1000
    assert config.max_steps == 10_000
    assert config.max_duration_s == 300


def test_config_rejects_negative_delay() -> None:
    with pytest.raises(ValidationError):
        ExecutionConfig(inter_block_delay_ms=-1)


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARMBLOCKS_INTER_BLOCK_DELAY_MS", "250")
    monkeypatch.setenv("ARMBLOCKS_MAX_STEPS", "42")
    config = ExecutionConfig.from_env()
    assert config.inter_block_delay_ms == 250
    assert config.max_steps == 42
    assert config.post_home_delay_ms == 1000


def test_config_from_env_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARMBLOCKS_MAX_STEPS", "lots")
    with pytest.raises(ValidationError):
        ExecutionConfig.from_env()


def test_new_token_carries_budget() -> None:
    token = ExecutionConfig(max_steps=7, max_duration_s=9).new_token()
    assert token.max_steps == 7
    assert token.max_duration_s == 9
