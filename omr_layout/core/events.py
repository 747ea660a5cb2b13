"""Observable events exposed to the hosting UI shell."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

from src.logger import logger

TEMPLATE_CHANGED = "templateChanged"
CAPTURE_COMPLETED = "captureCompleted"
CAMERA_ERROR = "cameraError"

EVENT_TYPES = (TEMPLATE_CHANGED, CAPTURE_COMPLETED, CAMERA_ERROR)


class EventHub:
    """Synchronous publish/subscribe for the three core event types."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register `callback`; returns a function that unsubscribes it."""
        if event not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event}")
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: Any) -> None:
        logger.debug(f"Event {event}")
        for callback in list(self._subscribers[event]):
            callback(payload)
