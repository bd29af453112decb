"""Tests for invoke_remote_tool: timeout, retry, circuit breaker."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest
from circuitbreaker import CircuitBreakerError
from fastmcp.exceptions import ToolError

from stagewire.constants import CB_TOOL_FAILURE_THRESHOLD
from stagewire.remote.fakes import FakeToolClient
from stagewire.remote.invoke import RetryPolicy, invoke_remote_tool
from stagewire.remote.services import (
    ToolResultError,
    ToolService,
    image_service,
)
from tests.conftest import make_settings

_NO_WAIT = RetryPolicy(attempts=3, initial_wait=0, max_wait=0)


class _FlakyClient:
    """Fails the first *failures* calls with *error*, then succeeds."""

    def __init__(self, failures: int, error: Exception) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    async def invoke(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return {"url": "https://x/img.png"}


class _SlowClient:
    async def invoke(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> Any:
        await asyncio.sleep(5)
        return {"url": "late"}


@pytest.fixture
def service(tmp_path: Path) -> ToolService:
    return image_service(make_settings(tmp_path))


async def test_success_builds_arguments_and_extracts(
    service: ToolService,
) -> None:
    client = FakeToolClient({"url": "https://x/img.png"})
    fields = await invoke_remote_tool(client, service, "a red bicycle")

    assert fields == {"imageUrl": "https://x/img.png"}
    assert client.calls == [
        ("image_create_image", {"prompt": "a red bicycle"})
    ]


async def test_transient_error_retried(service: ToolService) -> None:
    client = _FlakyClient(2, ConnectionError("connection reset"))
    fields = await invoke_remote_tool(
        client, service, "x", retry=_NO_WAIT
    )
    assert fields == {"imageUrl": "https://x/img.png"}
    assert client.calls == 3


async def test_retries_exhausted_reraises(service: ToolService) -> None:
    client = _FlakyClient(10, ConnectionError("connection reset"))
    with pytest.raises(ConnectionError):
        await invoke_remote_tool(client, service, "x", retry=_NO_WAIT)
    assert client.calls == 3


async def test_tool_error_not_retried(service: ToolService) -> None:
    client = _FlakyClient(10, ToolError("prompt rejected"))
    with pytest.raises(ToolError):
        await invoke_remote_tool(client, service, "x", retry=_NO_WAIT)
    assert client.calls == 1


async def test_bad_payload_not_retried(service: ToolService) -> None:
    client = FakeToolClient({"nope": 1})
    with pytest.raises(ToolResultError):
        await invoke_remote_tool(client, service, "x", retry=_NO_WAIT)
    assert len(client.calls) == 1


async def test_timeout_applies_per_call(service: ToolService) -> None:
    with pytest.raises(TimeoutError):
        await invoke_remote_tool(
            _SlowClient(),
            service,
            "x",
            timeout=0.01,
            retry=RetryPolicy(attempts=1, max_wait=0),
        )


async def test_breaker_opens_after_threshold(
    service: ToolService,
) -> None:
    client = FakeToolClient(error=RuntimeError("exploded"))
    single = RetryPolicy(attempts=1, max_wait=0)
    for _ in range(CB_TOOL_FAILURE_THRESHOLD):
        with pytest.raises(RuntimeError):
            await invoke_remote_tool(client, service, "x", retry=single)

    with pytest.raises(CircuitBreakerError):
        await invoke_remote_tool(client, service, "x", retry=single)
    assert len(client.calls) == CB_TOOL_FAILURE_THRESHOLD


async def test_tool_errors_do_not_open_breaker(
    service: ToolService,
) -> None:
    client = FakeToolClient(error=ToolError("bad prompt"))
    single = RetryPolicy(attempts=1, max_wait=0)
    for _ in range(CB_TOOL_FAILURE_THRESHOLD + 1):
        with pytest.raises(ToolError):
            await invoke_remote_tool(client, service, "x", retry=single)
    assert len(client.calls) == CB_TOOL_FAILURE_THRESHOLD + 1


def test_retry_policy_from_settings(tmp_path: Path) -> None:
    settings = make_settings(
        tmp_path,
        remote_retry_attempts=4,
        remote_retry_initial_wait=0.5,
        remote_retry_max_wait=2.0,
    )
    assert RetryPolicy.from_settings(settings) == RetryPolicy(
        attempts=4, initial_wait=0.5, max_wait=2.0
    )
