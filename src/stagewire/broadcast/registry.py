"""In-memory fan-out of progress envelopes to live observers.

Each subscribed SSE stream owns one ``QueueConnection``; the registry
writes a serialized frame into every registered connection and the
stream drains its own queue. There is no replay buffer: an observer
only sees envelopes broadcast while it is registered.

Single-process only — each worker has its own instance.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from stagewire.constants import OBSERVER_QUEUE_SIZE

logger = logging.getLogger(__name__)


class ObserverWriteError(Exception):
    """A frame could not be written to an observer connection."""


class ObserverConnection(Protocol):
    """Write side of one subscribed observer."""

    @property
    def closed(self) -> bool: ...

    def send(self, data: str) -> None: ...

    def close(self) -> None: ...


class QueueConnection:
    """Bounded asyncio.Queue-backed observer connection.

    A ``None`` item is the end-of-stream sentinel. ``send`` never
    blocks: a full queue means the reader has stalled, and the write
    fails instead of applying backpressure to the pipeline.
    """

    def __init__(self, maxsize: int = OBSERVER_QUEUE_SIZE) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(
            maxsize=maxsize
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, data: str) -> None:
        if self._closed:
            raise ObserverWriteError("connection closed")
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            raise ObserverWriteError("observer queue full") from None

    def close(self) -> None:
        """Mark closed and wake the reader. Idempotent."""
        if self._closed:
            return
        self._closed = True
        # Drop undelivered frames so the sentinel always fits.
        while self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def receive(self) -> str | None:
        """Next frame, or None once the connection is closed."""
        return await self._queue.get()


class BroadcastRegistry:
    """Set of live observer connections with best-effort fan-out.

    ``register``/``deregister``/``broadcast`` are synchronous and never
    await, so on a single event loop they cannot interleave with each
    other and the connection set needs no lock.
    """

    def __init__(self) -> None:
        self._connections: set[ObserverConnection] = set()

    def register(self, connection: ObserverConnection) -> None:
        """Add *connection* to the live set. Re-adding is a no-op."""
        self._connections.add(connection)
        logger.debug(
            "event=observer_registered observers=%d",
            len(self._connections),
        )

    def deregister(self, connection: ObserverConnection) -> None:
        """Remove *connection*. No-op if absent."""
        if connection in self._connections:
            self._connections.discard(connection)
            logger.debug(
                "event=observer_deregistered observers=%d",
                len(self._connections),
            )

    def broadcast(self, envelope: dict[str, Any]) -> int:
        """Write *envelope* to every registered connection.

        Serializes once, attempts exactly one write per connection,
        and never raises. Connections whose write fails are closed and
        dropped from the set. Returns the number of successful writes.
        """
        data = json.dumps(envelope)
        delivered = 0
        failed: list[ObserverConnection] = []
        for connection in list(self._connections):
            try:
                connection.send(data)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "event=observer_write_failed error=%s", exc
                )
                failed.append(connection)
        for connection in failed:
            self.deregister(connection)
            try:
                connection.close()
            except Exception:
                logger.debug(
                    "event=observer_close_failed", exc_info=True
                )
        return delivered

    @property
    def count(self) -> int:
        """Number of currently registered observers."""
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections
