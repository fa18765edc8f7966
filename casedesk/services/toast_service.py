# casedesk/services/toast_service.py
"""
Toast Service - transient user notifications
✅ Application-scoped channel with bounded history
✅ Live fan-out to SSE listener queues
✅ Per-request collector so JSON responses can echo their own toasts
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Protocol, Set

from casedesk.models import utc_now_iso

logger = logging.getLogger("casedesk.toasts")


class Notifier(Protocol):
    """Anything that can show a toast. Fire and forget, no acknowledgment."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...


@dataclass(frozen=True)
class Toast:
    kind: str
    message: str
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ToastChannel:
    """
    Process-wide toast channel, owned by the application.

    Usage:
        channel.success("Case status updated to Closed")

        # Consumer (in SSE endpoint)
        queue = channel.add_listener()
        toast = await queue.get()
    """

    def __init__(self, history_size: int = 50, max_queue_size: int = 100) -> None:
        self._history: Deque[Toast] = deque(maxlen=history_size)
        self._listeners: Set[asyncio.Queue] = set()
        self._max_queue_size = max_queue_size

    def success(self, message: str) -> None:
        self.publish(Toast("success", message))

    def error(self, message: str) -> None:
        self.publish(Toast("error", message))

    def info(self, message: str) -> None:
        self.publish(Toast("info", message))

    def publish(self, toast: Toast) -> None:
        self._history.append(toast)
        logger.info(f"[{toast.kind}] {toast.message}")

        dead_queues = []
        for queue in self._listeners:
            try:
                queue.put_nowait(toast)
            except asyncio.QueueFull:
                logger.warning("Toast listener queue full, dropping listener")
                dead_queues.append(queue)

        for queue in dead_queues:
            self.remove_listener(queue)

    def recent(self, limit: int = 20) -> List[Toast]:
        """Most recent toasts, newest first"""
        return list(reversed(self._history))[:limit]

    def add_listener(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._listeners.add(queue)
        logger.debug(f"Added toast listener. Total: {len(self._listeners)}")
        return queue

    def remove_listener(self, queue: asyncio.Queue) -> None:
        self._listeners.discard(queue)
        logger.debug(f"Removed toast listener. Total: {len(self._listeners)}")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class RequestToasts:
    """Forwards to the channel and remembers what this request showed"""

    def __init__(self, channel: ToastChannel) -> None:
        self._channel = channel
        self.toasts: List[Toast] = []

    def _emit(self, toast: Toast) -> None:
        self.toasts.append(toast)
        self._channel.publish(toast)

    def success(self, message: str) -> None:
        self._emit(Toast("success", message))

    def error(self, message: str) -> None:
        self._emit(Toast("error", message))

    def info(self, message: str) -> None:
        self._emit(Toast("info", message))

    def as_list(self) -> List[Dict[str, Any]]:
        return [toast.to_dict() for toast in self.toasts]
