"""
Capture boundary: raw input events and the thread-safe queue that carries
them from the OS listener thread to the thread that owns the engine.
"""

from __future__ import annotations

import queue
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional


class EventKind(Enum):
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"
    BUTTON_DOWN = "button_down"
    BUTTON_UP = "button_up"
    POINTER_MOVE = "pointer_move"
    SCROLL = "scroll"


@dataclass(frozen=True)
class CaptureEvent:
    """
    One captured input event.

    payload by kind: key name (str) for keys, button name (str) for
    buttons, ``(x, y)`` for pointer moves, ``(dx, dy)`` for scrolls.
    """
    kind: EventKind
    payload: Any
    host_time: float


class CaptureQueue:
    """Single-producer / single-consumer hand-off for capture events."""

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: "queue.Queue[CaptureEvent]" = queue.Queue(maxsize=maxsize)

    def put(self, event: CaptureEvent) -> None:
        self._queue.put_nowait(event)

    def drain(self, max_items: Optional[int] = None) -> List[CaptureEvent]:
        """Remove and return queued events without blocking."""
        events: List[CaptureEvent] = []
        while max_items is None or len(events) < max_items:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return events

    def __len__(self) -> int:
        return self._queue.qsize()
