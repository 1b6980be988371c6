"""
Recording pipeline: turns captured input events into keyframes.

Press-class events open a provisional keyframe with zero duration; the
matching release closes it. Moves and scrolls become complete keyframes
immediately. Every keyframe goes straight into the TimelineStore, so the
timeline grows live while recording.
"""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, Optional, Tuple

from logger import StatusLogger

from .events import CaptureEvent, EventKind
from .keyframe import Keyframe, is_known_button, is_known_key
from .store import TimelineStore


Slot = Tuple[str, str]


class Recorder:
    """Normalises a stream of CaptureEvents into keyframes."""

    def __init__(
        self,
        store: TimelineStore,
        logger: Optional[StatusLogger] = None,
        move_resolution: int = 1,
        ignored_keys: Iterable[str] = (),
    ) -> None:
        self.store = store
        self.logger = logger or StatusLogger()
        self.move_resolution = max(1, int(move_resolution))
        self.ignored_keys = {key.lower() for key in ignored_keys}
        self._recording = False
        self._offset = 0.0
        self._open: Dict[Slot, uuid.UUID] = {}
        self._session: List[uuid.UUID] = []
        self._moves_seen = 0
        self._last_move: Optional[Tuple[int, int]] = None

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def open_count(self) -> int:
        return len(self._open)

    def start(self, host_time: float = 0.0, timeline_time: float = 0.0) -> None:
        """Begin a session; ``host_time`` maps onto ``timeline_time``."""
        self._recording = True
        self._offset = timeline_time - host_time
        self._open.clear()
        self._session.clear()
        self._moves_seen = 0
        self._last_move = None

    def timeline_time(self, host_time: float) -> float:
        return max(0.0, host_time + self._offset)

    def stop(self, timeline_time: float) -> List[Keyframe]:
        """
        End the session.

        Keyframes still waiting for their release are closed at ``timeline_time``.
        Returns the keyframes recorded during the session that are still in
        the store.
        """
        for slot in list(self._open):
            self._close(slot, timeline_time)
        self._recording = False
        recorded = [self.store.get(kid) for kid in self._session]
        self._session.clear()
        return [kf for kf in recorded if kf is not None]

    def feed(self, event: CaptureEvent) -> Optional[Keyframe]:
        """Process one event; returns the keyframe it created or closed."""
        if not self._recording:
            return None

        t = self.timeline_time(event.host_time)
        kind = event.kind

        if kind in (EventKind.KEY_DOWN, EventKind.KEY_UP):
            key = event.payload.lower() if isinstance(event.payload, str) else event.payload
            if not is_known_key(key):
                self.logger.log_warning(f"Dropped {kind.value} event with unknown key {event.payload!r}")
                return None
            if key in self.ignored_keys:
                return None
            if kind is EventKind.KEY_DOWN:
                return self._open_slot(("key", key), Keyframe.key_press(t, key))
            return self._close(("key", key), t)

        if kind in (EventKind.BUTTON_DOWN, EventKind.BUTTON_UP):
            button = event.payload
            if not is_known_button(button):
                self.logger.log_warning(f"Dropped {kind.value} event with unknown button {button!r}")
                return None
            if kind is EventKind.BUTTON_DOWN:
                return self._open_slot(("button", button), Keyframe.mouse_button(t, button))
            return self._close(("button", button), t)

        if kind is EventKind.POINTER_MOVE:
            position = _int_pair(event.payload)
            if position is None:
                self.logger.log_warning(f"Dropped pointer move with payload {event.payload!r}")
                return None
            self._moves_seen += 1
            if self._moves_seen % self.move_resolution != 0 or position == self._last_move:
                return None
            self._last_move = position
            return self._append(Keyframe.mouse_move(t, *position))

        if kind is EventKind.SCROLL:
            delta = _int_pair(event.payload)
            if delta is None:
                self.logger.log_warning(f"Dropped scroll with payload {event.payload!r}")
                return None
            if delta == (0, 0):
                return None
            return self._append(Keyframe.scroll(t, *delta))

        self.logger.log_warning(f"Dropped event of unsupported kind {kind!r}")
        return None

    # Internal helpers -------------------------------------------------

    def _append(self, keyframe: Keyframe) -> Keyframe:
        self.store.add(keyframe)
        self._session.append(keyframe.id)
        return keyframe

    def _open_slot(self, slot: Slot, keyframe: Keyframe) -> Optional[Keyframe]:
        # Held keys auto-repeat; only the first press opens a keyframe.
        if slot in self._open:
            return None
        self._open[slot] = keyframe.id
        return self._append(keyframe)

    def _close(self, slot: Slot, t: float) -> Optional[Keyframe]:
        keyframe_id = self._open.pop(slot, None)
        if keyframe_id is None:
            self.logger.log_debug(f"Release of {slot[1]!r} without a recorded press")
            return None
        keyframe = self.store.get(keyframe_id)
        if keyframe is None:
            return None
        keyframe.set_duration(t - keyframe.timestamp)
        return keyframe


def _int_pair(payload: object) -> Optional[Tuple[int, int]]:
    if not isinstance(payload, (tuple, list)) or len(payload) != 2:
        return None
    try:
        return int(payload[0]), int(payload[1])
    except (TypeError, ValueError):
        return None
