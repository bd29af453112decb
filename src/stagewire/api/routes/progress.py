"""Observer channel — SSE stream of stage-update envelopes."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Response
from sse_starlette.sse import EventSourceResponse

from stagewire.api.dependencies import get_registry, get_settings
from stagewire.broadcast.registry import (
    BroadcastRegistry,
    QueueConnection,
)
from stagewire.config import Settings
from stagewire.constants import CONNECTED_MESSAGE, SSE_PING_SECONDS
from stagewire.events import connected_envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["progress"])

_NO_CACHE = "no-cache, no-store, must-revalidate"


def _cors_headers(settings: Settings) -> dict[str, str]:
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Headers": "Cache-Control, Content-Type",
        "Access-Control-Allow-Methods": "GET, OPTIONS",
    }
    if settings.cors_origins:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins[0]
    return headers


async def observer_stream(
    connection: QueueConnection,
    registry: BroadcastRegistry,
) -> AsyncIterator[dict[str, str]]:
    """Yield SSE frames for one observer until it goes away.

    The handshake is queued before registration so it is always the
    first frame. The connection is deregistered exactly once, when the
    generator finishes: client disconnect (sse-starlette cancels the
    generator), or the registry closing a connection whose write failed.
    """
    connection.send(json.dumps(connected_envelope(CONNECTED_MESSAGE)))
    registry.register(connection)
    logger.info("event=sse_connected observers=%d", registry.count)
    try:
        while True:
            data = await connection.receive()
            if data is None:
                break
            yield {"data": data}
    finally:
        registry.deregister(connection)
        connection.close()
        logger.info(
            "event=sse_disconnected observers=%d", registry.count
        )


@router.options("/progress")
async def progress_preflight(
    settings: Settings = Depends(get_settings),
) -> Response:
    """Answer negotiation requests without opening a stream."""
    return Response(status_code=200, headers=_cors_headers(settings))


@router.get("/progress")
async def progress(
    registry: BroadcastRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> EventSourceResponse:
    """Subscribe to live pipeline progress."""
    connection = QueueConnection(maxsize=settings.observer_queue_size)
    return EventSourceResponse(
        observer_stream(connection, registry),
        headers={"Cache-Control": _NO_CACHE},
        ping=SSE_PING_SECONDS,
        sep="\n",
    )
