"""Shared test fixtures — fake remote clients, in-memory state."""

import json
import os

# Fake account for all tests; no real MCP calls.
# Set unconditionally at import time so a real connection string in
# your shell never leaks into a test run.
os.environ["ATXP_CONNECTION_STRING"] = (
    "https://accounts.atxp.ai?connection_token=test-token"
    "&account_id=acct-test"
)

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from stagewire.api.app_state import AppState, build_app_state
from stagewire.broadcast.registry import BroadcastRegistry
from stagewire.config import Settings
from stagewire.logger import PipelineLogger
from stagewire.main import app
from stagewire.remote.fakes import FakeClientFactory, FakeToolClient
from stagewire.remote.invoke import reset_breakers

PRIMARY_RESULT: dict[str, Any] = {"url": "https://x/img.png"}
DEPENDENT_RESULT: dict[str, Any] = {
    "filename": "f123",
    "url": "https://cdn/f123",
}


class RecordingConnection:
    """Observer connection that keeps every decoded envelope."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.frames: list[str] = []
        self.attempts = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, data: str) -> None:
        self.attempts += 1
        if self.fail:
            raise OSError("broken pipe")
        self.frames.append(data)

    def close(self) -> None:
        self._closed = True

    @property
    def envelopes(self) -> list[dict[str, Any]]:
        return [json.loads(f) for f in self.frames]

    def stages(self) -> list[tuple[str, str]]:
        return [
            (e["stage"], e["status"])
            for e in self.envelopes
            if e.get("type") == "stage-update"
        ]


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    """Settings with retries and waits disabled."""
    values: dict[str, Any] = {
        "remote_retry_attempts": 1,
        "remote_retry_initial_wait": 0,
        "remote_retry_max_wait": 0,
        "log_dir": tmp_path / "logs",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


def make_factory(
    *,
    primary_result: Any = PRIMARY_RESULT,
    dependent_result: Any = DEPENDENT_RESULT,
    primary_error: Exception | None = None,
    dependent_error: Exception | None = None,
) -> FakeClientFactory:
    return FakeClientFactory({
        "image": FakeToolClient(primary_result, primary_error),
        "filestore": FakeToolClient(dependent_result, dependent_error),
    })


def setup_test_app(
    tmp_path: Path,
    factory: FakeClientFactory | None = None,
) -> AppState:
    """Build app state around fake clients and install it on ``app``.

    Returns the AppState so tests can inspect the registry and store.
    """
    settings = make_settings(tmp_path)
    state = build_app_state(
        settings,
        client_factory=factory or make_factory(),
        pipeline_logger=PipelineLogger(
            log_dir=settings.log_dir, level="WARNING"
        ),
    )
    app.state.settings = settings
    app.state.typed = state
    return state


@pytest.fixture(autouse=True)
def _fresh_breakers() -> Iterator[None]:
    """Circuit breakers are process-global; isolate every test."""
    reset_breakers()
    yield
    reset_breakers()


@pytest.fixture
def registry() -> BroadcastRegistry:
    return BroadcastRegistry()
