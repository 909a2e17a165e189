"""
In-process event bus for fire-and-forget side effects.

Auth and user operations publish events after their transaction commits.
Worker threads deliver them to subscribers (audit log, cache invalidation,
real-time push). A failing or slow subscriber never reaches the publisher.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

_STOP = object()


@dataclass(frozen=True)
class Event:
    name: str
    tenant_id: Optional[str] = None
    actor_id: Optional[str] = None
    entity_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[Event], None]


class EventBus:
    WILDCARD = "*"

    def __init__(self, *, maxsize: int = 1000, workers: int = 1) -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self._closed = False
        for i in range(max(1, workers)):
            t = threading.Thread(target=self._run, name=f"event-worker-{i}", daemon=True)
            t.start()
            self._threads.append(t)

    def subscribe(self, name: str, handler: Handler) -> None:
        """Register handler for an event name, or "*" for every event."""
        with self._lock:
            self._subscribers[name].append(handler)

    def publish(self, name: str, **kwargs: Any) -> bool:
        """Queue an event without blocking. Returns False if it was dropped."""
        if self._closed:
            logger.warning("Event bus closed, dropping %s", name)
            return False
        try:
            self._queue.put_nowait(Event(name=name, **kwargs))
        except queue.Full:
            logger.warning("Event queue full, dropping %s", name)
            return False
        return True

    def join(self) -> None:
        """Block until every queued event has been delivered."""
        self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for t in self._threads:
            t.join(timeout)

    def _handlers_for(self, name: str) -> List[Handler]:
        with self._lock:
            return list(self._subscribers.get(name, ())) + list(self._subscribers.get(self.WILDCARD, ()))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                for handler in self._handlers_for(item.name):
                    try:
                        handler(item)
                    except Exception:
                        logger.exception("Event handler failed for %s", item.name)
            finally:
                self._queue.task_done()


def audit_log_handler(event: Event) -> None:
    """Default subscriber: one audit line per event."""
    audit_logger.info(
        "%s tenant=%s actor=%s entity=%s data=%s",
        event.name,
        event.tenant_id,
        event.actor_id,
        event.entity_id,
        event.data,
    )
