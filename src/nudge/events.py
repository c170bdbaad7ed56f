"""
Change notifications.

The app publishes ``tasks.changed`` from synchronous code (user actions and
reminder ticks); the daemon's listing printer consumes it on the event loop.

Usage:
    bus = EventBus()
    bus.subscribe(TASKS_CHANGED, print_listing)
    await bus.start()
    bus.emit_nowait(TASKS_CHANGED, {"action": "added", "count": 3})
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

TASKS_CHANGED = "tasks.changed"


@dataclass
class Event:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """
    Queue between synchronous publishers and async listeners.

    Listeners run one at a time in publish order. A listener that fails or
    exceeds ``handler_timeout`` is logged and skipped.
    """

    def __init__(self, max_queue_size: int = 1000, handler_timeout: float = 30.0):
        self._listeners: dict[str, list[EventHandler]] = {}
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_queue_size)
        self._handler_timeout = handler_timeout
        self._running = False
        self._worker: asyncio.Task[None] | None = None

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._listeners.setdefault(event_name, []).append(handler)

    def emit_nowait(self, event_name: str, payload: dict[str, Any] | None = None) -> Event:
        """
        Queue an event for the listeners.

        Dropped with a warning when the bus is not started or the queue is full.
        """
        event = Event(name=event_name, payload=payload or {})

        if not self._running:
            logger.warning("event_dropped", event_name=event_name, reason="bus not running")
        else:
            try:
                self._queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("event_dropped", event_name=event_name, reason="queue full")

        return event

    async def _deliver(self, event: Event) -> None:
        for handler in self._listeners.get(event.name, []):
            try:
                await asyncio.wait_for(handler(event), timeout=self._handler_timeout)
            except asyncio.TimeoutError:
                logger.error("listener_timeout", event_name=event.name, handler=handler.__name__)
            except Exception as e:
                logger.error(
                    "listener_error",
                    event_name=event.name,
                    handler=handler.__name__,
                    error=str(e),
                    exc_info=True,
                )

    async def _work(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._worker = asyncio.create_task(self._work())
        logger.info("event_bus_started")

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """Stop accepting events, deliver what is already queued, then stop."""
        if not self._running:
            return
        self._running = False

        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("event_queue_drain_timeout", remaining=self._queue.qsize())

        if self._worker:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        logger.info("event_bus_stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()
