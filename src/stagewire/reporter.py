"""Stage reporter — fire-and-forget progress signaling for pipelines."""

from __future__ import annotations

import logging
from collections import OrderedDict

from stagewire.broadcast.registry import BroadcastRegistry
from stagewire.constants import FINISHED_REQUESTS_TRACKED, StageStatus
from stagewire.events import (
    StageEvent,
    create_stage_event,
    stage_update_envelope,
)
from stagewire.logger import PipelineLogger

logger = logging.getLogger(__name__)


class StageReporter:
    """Turns pipeline transitions into broadcast stage-update envelopes.

    ``report`` is synchronous and never raises: observer delivery
    failures are absorbed by the registry, and anything else is logged.
    Once a request emits a terminal event (``final``, or an ``error``
    flagged terminal) later events for that request are dropped.
    """

    def __init__(
        self,
        registry: BroadcastRegistry,
        pipeline_logger: PipelineLogger | None = None,
        max_tracked: int = FINISHED_REQUESTS_TRACKED,
    ) -> None:
        self._registry = registry
        self._pipeline_logger = pipeline_logger
        self._max_tracked = max_tracked
        self._finished: OrderedDict[str, None] = OrderedDict()

    def report(
        self,
        request_id: str,
        stage: str,
        message: str,
        status: StageStatus | str,
        *,
        terminal: bool = False,
    ) -> StageEvent | None:
        """Broadcast one stage event; return it, or None if dropped."""
        if request_id in self._finished:
            logger.warning(
                "event=stage_after_terminal request_id=%s stage=%s",
                request_id,
                stage,
            )
            return None
        try:
            event = create_stage_event(
                request_id, stage, message, status
            )
            self._registry.broadcast(stage_update_envelope(event))
        except Exception:
            logger.exception(
                "event=stage_report_failed request_id=%s stage=%s",
                request_id,
                stage,
            )
            return None

        if event.is_final or terminal:
            self._mark_finished(request_id)
        if self._pipeline_logger is not None:
            self._pipeline_logger.log_stage(
                request_id, event.stage, event.status, message
            )
        return event

    def is_finished(self, request_id: str) -> bool:
        return request_id in self._finished

    def _mark_finished(self, request_id: str) -> None:
        self._finished[request_id] = None
        while len(self._finished) > self._max_tracked:
            self._finished.popitem(last=False)
