"""Mini README: Fan-out of sync events to every live connection.

Structure:
    * Connection - protocol of what the broadcaster needs from a websocket.
    * Broadcaster - registry of accepted connections, each with its own
      outbound queue drained by a dedicated writer task.

``publish`` only enqueues: it never awaits a socket, so a slow client cannot
hold up the mutation that produced the event. Each queue is FIFO, so every
connection sees events in publish order. A published event goes once to
every registered connection, the mutation's originator included. There is
no acknowledgement or retry: a failed send or an overflowing queue drops
the connection, and a client that was not connected simply misses the
event until it resyncs on reconnect.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Protocol

from fastapi import WebSocketDisconnect

from ..logging_utils import get_logger
from .events import SyncEvent

LOGGER = get_logger(__name__)

DEFAULT_MAX_PENDING = 1000


class Connection(Protocol):
    async def accept(self) -> None: ...

    async def send_json(self, data: Any) -> None: ...


@dataclass
class _Subscriber:
    connection: Connection
    outbox: "asyncio.Queue[Dict[str, Any]]"
    writer: "asyncio.Task[None]"


def _discard_pending(outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    """Empty a queue, marking every item done so ``join`` waiters wake up."""

    while True:
        try:
            outbox.get_nowait()
        except asyncio.QueueEmpty:
            return
        outbox.task_done()


class Broadcaster:
    """Registry of live connections with a best-effort, non-blocking publish."""

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        self._max_pending = max_pending
        self._subscribers: Dict[str, _Subscriber] = {}

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)

    async def connect(self, connection: Connection) -> str:
        """Accept the connection and register it for future events."""

        await connection.accept()
        connection_id = uuid.uuid4().hex
        outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=self._max_pending)
        writer = asyncio.create_task(self._write(connection_id, connection, outbox))
        self._subscribers[connection_id] = _Subscriber(connection, outbox, writer)
        LOGGER.info("Client connected: %s (%s live)", connection_id, len(self._subscribers))
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        subscriber = self._subscribers.pop(connection_id, None)
        if subscriber is None:
            return
        if subscriber.writer is not asyncio.current_task():
            subscriber.writer.cancel()
        _discard_pending(subscriber.outbox)
        LOGGER.info("Client disconnected: %s", connection_id)

    def publish(self, event: SyncEvent) -> int:
        """Queue ``event`` for every connection; returns how many accepted it."""

        message = event.as_message()
        queued = 0
        for connection_id, subscriber in list(self._subscribers.items()):
            try:
                subscriber.outbox.put_nowait(message)
            except asyncio.QueueFull:
                LOGGER.warning(
                    "Dropping connection %s: %s events pending",
                    connection_id,
                    self._max_pending,
                )
                self.disconnect(connection_id)
            else:
                queued += 1
        LOGGER.debug("Queued %s for %s connection(s)", event.event_type.value, queued)
        return queued

    async def drain(self) -> None:
        """Wait until every queued event has been sent or discarded."""

        await asyncio.gather(
            *(subscriber.outbox.join() for subscriber in list(self._subscribers.values()))
        )

    async def _write(
        self,
        connection_id: str,
        connection: Connection,
        outbox: "asyncio.Queue[Dict[str, Any]]",
    ) -> None:
        while True:
            message = await outbox.get()
            try:
                await connection.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as error:
                LOGGER.warning(
                    "Dropping connection %s after failed %s delivery: %s",
                    connection_id,
                    message.get("event"),
                    error,
                )
                outbox.task_done()
                self.disconnect(connection_id)
                return
            outbox.task_done()
