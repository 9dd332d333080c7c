"""
Event bus for monitor lifecycle notifications.

Subscribers receive events on an ``asyncio.Queue``; each event is a dict
``{"event", "timestamp", "data"}``. ``shutdown`` puts ``None`` on every queue
so consumers can stop.
"""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.events")


class MonitorEvent:
    """Event names published by the file monitor."""

    STARTED = "started"
    STOPPED = "stopped"
    FILE_DETECTED = "file_detected"
    PROCESSING_STARTED = "processing_started"
    PROCESSING_COMPLETED = "processing_completed"
    PROCESSING_FAILED = "processing_failed"
    ERROR = "error"

    ALL = (
        STARTED,
        STOPPED,
        FILE_DETECTED,
        PROCESSING_STARTED,
        PROCESSING_COMPLETED,
        PROCESSING_FAILED,
        ERROR,
    )


class EventBus:
    """
    Pub/sub for monitor events.

    Supports:
    - Subscribing to specific event types or to all of them
    - Filtering to events about one file path
    """

    def __init__(self) -> None:
        self._type_subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._all_subscribers: set[asyncio.Queue] = set()
        self._file_filters: dict[asyncio.Queue, str | None] = {}

    def subscribe(
        self,
        event_types: list[str] | None = None,
        file_path: str | None = None,
    ) -> asyncio.Queue:
        """
        Subscribe to events.

        Args:
            event_types: Event types to receive (None = all)
            file_path: Only receive events about this file (None = all files).
                Events that carry no file path are always delivered.

        Returns:
            Queue that will receive events
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._file_filters[queue] = file_path

        if event_types:
            for event_type in event_types:
                self._type_subscribers[event_type].add(queue)
        else:
            self._all_subscribers.add(queue)

        logger.debug(f"New subscriber: types={event_types}, file_path={file_path}")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Remove subscriber from all event types."""
        self._all_subscribers.discard(queue)
        for subscribers in self._type_subscribers.values():
            subscribers.discard(queue)
        self._file_filters.pop(queue, None)

    def _all_queues(self) -> set[asyncio.Queue]:
        queues = set(self._all_subscribers)
        for subscribers in self._type_subscribers.values():
            queues.update(subscribers)
        return queues

    async def emit(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        file_path: str | None = None,
    ) -> int:
        """
        Emit an event to all relevant subscribers.

        Args:
            event_type: One of the ``MonitorEvent`` names
            data: Event payload
            file_path: File the event is about, for filtering

        Returns:
            Number of subscribers notified
        """
        event = {
            "event": event_type,
            "timestamp": datetime.now(UTC).isoformat(),
            "data": data or {},
        }

        subscribers = set(self._all_subscribers)
        subscribers.update(self._type_subscribers.get(event_type, set()))

        notified = 0
        for queue in subscribers:
            wanted = self._file_filters.get(queue)
            if wanted and file_path and wanted != file_path:
                continue
            await queue.put(event)
            notified += 1

        if notified > 0:
            logger.debug(f"Emitted {event_type} to {notified} subscribers")
        return notified

    def subscriber_count(self) -> int:
        """Get total number of active subscribers."""
        return len(self._all_queues())

    async def shutdown(self) -> None:
        """Signal every subscriber with ``None`` and drop them."""
        for queue in self._all_queues():
            await queue.put(None)
        self._all_subscribers.clear()
        self._type_subscribers.clear()
        self._file_filters.clear()


def format_event_line(event: dict[str, Any]) -> str:
    """Render an event as one JSON line."""
    return json.dumps(event, default=str)
