"""Submission pipeline — primary tool, then best-effort dependent tool.

Stage sequence for one request (each line is one stage event):

    initializing            in-progress
    creating-clients        in-progress
    calling-primary-tool    in-progress
    calling-primary-tool    completed     | primary-tool-error  error (terminal)
    calling-dependent-tool  in-progress
    completed               final         | filestore-error     error
                                          | completed           final

A primary failure ends the request with ``PrimaryStageError`` and
nothing is stored. A dependent failure is recovered: the record keeps
the primary fields only and the request still succeeds.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from stagewire.constants import (
    PRIMARY_FAILURE_MESSAGE,
    TEXT_REQUIRED_MESSAGE,
    PipelineOutcome,
    StageName,
    StageStatus,
)
from stagewire.events import utc_timestamp
from stagewire.logger import PipelineLogger
from stagewire.models.submission import Submission
from stagewire.pipeline.ids import RequestIdGenerator
from stagewire.remote.client import ClientFactory, RemoteToolClient
from stagewire.remote.invoke import RetryPolicy, invoke_remote_tool
from stagewire.remote.services import ToolService, enrichment_defaults
from stagewire.reporter import StageReporter
from stagewire.repositories.protocols import SubmissionRepository
from stagewire.resilience.errors import ErrorClass, classify_error

logger = logging.getLogger(__name__)


class SubmissionValidationError(ValueError):
    """Input rejected before the pipeline starts."""


class PrimaryStageError(Exception):
    """The required remote step failed; the request cannot succeed."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str,
        kind: ErrorClass,
        details: str,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.kind = kind
        self.details = details

    def to_payload(self) -> dict[str, str]:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "details": self.details,
        }


@dataclass
class PipelineResult:
    """Finalized outcome of a successful run (full or degraded)."""

    request_id: str
    submission: Submission
    outcome: PipelineOutcome
    duration_ms: float = 0.0
    dependent_error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.outcome == PipelineOutcome.COMPLETED_DEGRADED

    @property
    def status_code(self) -> int:
        # Degraded runs are still successful creations.
        return 201


def validate_text(text: Any) -> str:
    """Return *text* stripped, or raise if nothing is left."""
    if not isinstance(text, str) or not text.strip():
        raise SubmissionValidationError(TEXT_REQUIRED_MESSAGE)
    return text.strip()


class SubmissionPipeline:
    """Runs the primary → dependent tool chain for one submission.

    Stateless between runs apart from the id generator, so concurrent
    ``run`` calls interleave freely at each remote-call await.
    """

    def __init__(
        self,
        primary: ToolService,
        dependent: ToolService,
        client_factory: ClientFactory,
        reporter: StageReporter,
        repository: SubmissionRepository,
        *,
        timeout: float | None = None,
        retry: RetryPolicy | None = None,
        pipeline_logger: PipelineLogger | None = None,
        id_generator: RequestIdGenerator | None = None,
    ) -> None:
        self._primary = primary
        self._dependent = dependent
        self._client_factory = client_factory
        self._reporter = reporter
        self._repository = repository
        self._timeout = timeout
        self._retry = retry
        self._pipeline_logger = pipeline_logger
        self._ids = id_generator or RequestIdGenerator()

    async def run(self, text: Any) -> PipelineResult:
        """Process one submission end to end.

        Raises:
            SubmissionValidationError: *text* is empty after trimming.
                No stage event is emitted.
            PrimaryStageError: the primary step (or client setup)
                failed. A terminal error event has been emitted.
        """
        cleaned = validate_text(text)
        request_id = self._ids.next_id()
        start = time.monotonic()

        self._report(
            request_id,
            StageName.INITIALIZING,
            "Starting process...",
            StageStatus.IN_PROGRESS,
        )
        submission = Submission(
            id=int(request_id),
            text=cleaned,
            timestamp=utc_timestamp(),
            enrichment=enrichment_defaults(
                self._primary, self._dependent
            ),
        )

        # ── creating-clients ─────────────────────────────
        self._report(
            request_id,
            StageName.CREATING_CLIENTS,
            "Initializing ATXP clients...",
            StageStatus.IN_PROGRESS,
        )
        try:
            primary_client = self._client_factory.create(self._primary)
            dependent_client = self._client_factory.create(
                self._dependent
            )
        except Exception as exc:
            raise self._fail(
                request_id,
                StageName.CREATING_CLIENTS,
                "Failed to initialize ATXP clients!",
                exc,
                start,
                cleaned,
            ) from exc

        # ── calling-primary-tool ─────────────────────────
        self._report(
            request_id,
            StageName.CALLING_PRIMARY_TOOL,
            f"Calling {self._primary.description}...",
            StageStatus.IN_PROGRESS,
        )
        try:
            primary_fields = await self._invoke(
                primary_client, self._primary, cleaned
            )
        except Exception as exc:
            raise self._fail(
                request_id,
                StageName.PRIMARY_TOOL_ERROR,
                f"Failed to call {self._primary.description}!",
                exc,
                start,
                cleaned,
            ) from exc
        submission.apply(primary_fields)
        self._report(
            request_id,
            StageName.CALLING_PRIMARY_TOOL,
            f"{self._primary.description} call completed!",
            StageStatus.COMPLETED,
        )

        # ── calling-dependent-tool (best effort) ─────────
        self._report(
            request_id,
            StageName.CALLING_DEPENDENT_TOOL,
            f"Calling {self._dependent.description}...",
            StageStatus.IN_PROGRESS,
        )
        dependent_error: str | None = None
        try:
            dependent_fields = await self._invoke(
                dependent_client, self._dependent, primary_fields
            )
        except Exception as exc:
            dependent_error = str(exc) or type(exc).__name__
            logger.warning(
                "event=dependent_stage_failed request_id=%s"
                " service=%s error=%s",
                request_id,
                self._dependent.name,
                dependent_error,
            )
            if self._pipeline_logger is not None:
                self._pipeline_logger.log_error(
                    request_id, self._dependent.name, dependent_error
                )
            self._report(
                request_id,
                StageName.FILESTORE_ERROR,
                f"Failed to call {self._dependent.description},"
                f" continuing with the {self._primary.name} result",
                StageStatus.ERROR,
            )
            outcome = PipelineOutcome.COMPLETED_DEGRADED
            final_message = (
                f"Completed without {self._dependent.name} storage"
            )
        else:
            submission.apply(dependent_fields)
            outcome = PipelineOutcome.COMPLETED
            final_message = "All ATXP MCP tool calls completed!"

        await self._repository.add(submission)
        self._report(
            request_id,
            StageName.COMPLETED,
            final_message,
            StageStatus.FINAL,
        )

        duration_ms = (time.monotonic() - start) * 1000
        if self._pipeline_logger is not None:
            self._pipeline_logger.log_request(
                request_id, cleaned, outcome, duration_ms
            )
        logger.info(
            "event=pipeline_done request_id=%s outcome=%s"
            " duration_ms=%.0f",
            request_id,
            outcome,
            duration_ms,
        )
        return PipelineResult(
            request_id=request_id,
            submission=submission,
            outcome=outcome,
            duration_ms=duration_ms,
            dependent_error=dependent_error,
        )

    async def _invoke(
        self,
        client: RemoteToolClient,
        service: ToolService,
        tool_input: Any,
    ) -> dict[str, str]:
        return await invoke_remote_tool(
            client,
            service,
            tool_input,
            timeout=self._timeout,
            retry=self._retry,
        )

    def _report(
        self,
        request_id: str,
        stage: StageName,
        message: str,
        status: StageStatus,
        *,
        terminal: bool = False,
    ) -> None:
        self._reporter.report(
            request_id, stage, message, status, terminal=terminal
        )

    def _fail(
        self,
        request_id: str,
        stage: StageName,
        message: str,
        error: Exception,
        start: float,
        text: str,
    ) -> PrimaryStageError:
        """Emit the terminal error event and build the caller's error."""
        details = str(error) or type(error).__name__
        logger.error(
            "event=primary_stage_failed request_id=%s stage=%s error=%s",
            request_id,
            stage,
            details,
        )
        self._report(
            request_id,
            stage,
            message,
            StageStatus.ERROR,
            terminal=True,
        )
        if self._pipeline_logger is not None:
            self._pipeline_logger.log_error(
                request_id, self._primary.name, details
            )
            self._pipeline_logger.log_request(
                request_id,
                text,
                PipelineOutcome.FAILED,
                (time.monotonic() - start) * 1000,
            )
        return PrimaryStageError(
            PRIMARY_FAILURE_MESSAGE,
            request_id=request_id,
            kind=classify_error(error),
            details=details,
        )
