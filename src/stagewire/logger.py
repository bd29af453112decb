"""Structured JSON logger for pipeline request and stage tracking."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from stagewire.constants import ERROR_TRUNCATION_CHARS
from stagewire.logging_config import LOG_DATEFMT, LOG_FORMAT

__all__ = ["PipelineLogger", "LOG_FORMAT", "LOG_DATEFMT"]


class PipelineLogger:
    """JSON-lines file logger with request_id correlation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger("stagewire.pipeline.trace")
        self._logger.setLevel(getattr(logging, level.upper()))

        # One file per process; re-pointing at a new log_dir replaces it.
        log_file = (log_dir / "pipeline.log").resolve()
        current = [
            h
            for h in self._logger.handlers
            if isinstance(h, logging.FileHandler)
            and Path(h.baseFilename) == log_file
        ]
        if not current:
            for old in list(self._logger.handlers):
                self._logger.removeHandler(old)
                old.close()
            handler = logging.FileHandler(log_file)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    def log_request(
        self,
        request_id: str,
        text: str,
        outcome: str,
        duration_ms: float,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "request",
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": request_id,
                "text": text[:ERROR_TRUNCATION_CHARS],
                "outcome": outcome,
                "duration_ms": duration_ms,
            })
        )

    def log_error(
        self,
        request_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": request_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )

    def log_stage(
        self,
        request_id: str,
        stage_name: str,
        status: str,
        message: str = "",
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "stage",
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": request_id,
                "stage": stage_name,
                "status": status,
                "message": message,
            })
        )
