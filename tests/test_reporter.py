"""Tests for StageReporter."""

from __future__ import annotations

import json
from pathlib import Path

from stagewire.broadcast.registry import BroadcastRegistry
from stagewire.constants import StageStatus
from stagewire.logger import PipelineLogger
from stagewire.reporter import StageReporter
from tests.conftest import RecordingConnection


def _reporter_with_observer(
    **kwargs: object,
) -> tuple[StageReporter, RecordingConnection]:
    registry = BroadcastRegistry()
    conn = RecordingConnection()
    registry.register(conn)
    return StageReporter(registry, **kwargs), conn  # type: ignore[arg-type]


class TestReport:
    def test_broadcasts_stage_update(self) -> None:
        reporter, conn = _reporter_with_observer()
        event = reporter.report(
            "r1", "initializing", "Starting...", StageStatus.IN_PROGRESS
        )

        assert event is not None
        assert len(conn.envelopes) == 1
        env = conn.envelopes[0]
        assert env["type"] == "stage-update"
        assert env["id"] == "r1"
        assert env["stage"] == "initializing"
        assert env["status"] == "in-progress"

    def test_never_raises_when_every_write_fails(self) -> None:
        registry = BroadcastRegistry()
        bad = RecordingConnection(fail=True)
        registry.register(bad)
        reporter = StageReporter(registry)

        event = reporter.report("r1", "x", "m", "in-progress")

        assert event is not None
        assert bad.attempts == 1

    def test_invalid_status_is_absorbed(self) -> None:
        reporter, conn = _reporter_with_observer()
        assert reporter.report("r1", "x", "m", "bogus") is None
        assert conn.frames == []

    def test_events_in_emission_order(self) -> None:
        reporter, conn = _reporter_with_observer()
        for stage in ("a", "b", "c"):
            reporter.report("r1", stage, "", "in-progress")
        assert [e["stage"] for e in conn.envelopes] == ["a", "b", "c"]


class TestTerminalEvents:
    def test_nothing_after_final(self) -> None:
        reporter, conn = _reporter_with_observer()
        reporter.report("r1", "completed", "done", StageStatus.FINAL)
        dropped = reporter.report("r1", "late", "x", "in-progress")

        assert dropped is None
        assert reporter.is_finished("r1")
        assert [e["stage"] for e in conn.envelopes] == ["completed"]

    def test_nothing_after_terminal_error(self) -> None:
        reporter, conn = _reporter_with_observer()
        reporter.report(
            "r1", "primary-tool-error", "boom", "error", terminal=True
        )
        reporter.report("r1", "late", "x", "in-progress")
        assert len(conn.envelopes) == 1

    def test_non_terminal_error_allows_more(self) -> None:
        reporter, conn = _reporter_with_observer()
        reporter.report("r1", "filestore-error", "degraded", "error")
        reporter.report("r1", "completed", "done", "final")
        assert [e["status"] for e in conn.envelopes] == [
            "error",
            "final",
        ]

    def test_other_requests_unaffected(self) -> None:
        reporter, conn = _reporter_with_observer()
        reporter.report("r1", "completed", "done", "final")
        reporter.report("r2", "initializing", "go", "in-progress")
        assert [e["id"] for e in conn.envelopes] == ["r1", "r2"]

    def test_finished_tracking_is_bounded(self) -> None:
        reporter, _ = _reporter_with_observer(max_tracked=2)
        for rid in ("r1", "r2", "r3"):
            reporter.report(rid, "completed", "", "final")
        assert not reporter.is_finished("r1")
        assert reporter.is_finished("r2")
        assert reporter.is_finished("r3")


def test_stage_written_to_pipeline_log(tmp_path: Path) -> None:
    plog = PipelineLogger(log_dir=tmp_path, level="INFO")
    reporter, _ = _reporter_with_observer(pipeline_logger=plog)
    reporter.report("r1", "initializing", "Starting...", "in-progress")

    for handler in plog._logger.handlers:
        handler.flush()
    lines = (tmp_path / "pipeline.log").read_text().splitlines()
    records = [json.loads(line) for line in lines]
    assert any(
        r["type"] == "stage"
        and r["request_id"] == "r1"
        and r["stage"] == "initializing"
        for r in records
    )
