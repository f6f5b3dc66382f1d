"""Synchronous in-process bus for schedule domain events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Handler = Callable[[BaseModel], None]


class EventBus:
    """Publish/subscribe bus; handlers run in registration order.

    Every published event is appended to ``history`` so callers can see what
    a write triggered.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[BaseModel], list[Handler]] = defaultdict(list)
        self.history: list[BaseModel] = []

    def subscribe(self, event_type: type[BaseModel], handler: Handler) -> Callable[[], None]:
        """Register *handler* and return a callable that removes it again."""
        self._subscribers[event_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: BaseModel) -> None:
        self.history.append(event)
        handlers = list(self._subscribers.get(type(event), []))
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)
