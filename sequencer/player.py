"""
Replay: emits injection calls for keyframes as the playhead crosses them.

The player is stateless with respect to time; the engine hands it the
playhead interval covered by each tick and the player diffs which
keyframes became active or inactive in that interval.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Tuple

from logger import StatusLogger

from .injection import InjectionError
from .keyframe import Keyframe, KeyPress, MouseButton, MouseMove, Scroll
from .store import TimelineStore


class Injector(Protocol):
    def press_key(self, key: str) -> None: ...
    def release_key(self, key: str) -> None: ...
    def press_button(self, button: str) -> None: ...
    def release_button(self, button: str) -> None: ...
    def move_to(self, x: int, y: int) -> None: ...
    def scroll(self, dx: int, dy: int) -> None: ...
    def position(self) -> Tuple[int, int]: ...


@dataclass
class _Active:
    keyframe: Keyframe
    origin: Optional[Tuple[int, int]] = None
    last_position: Optional[Tuple[int, int]] = None


class Player:
    """Turns playhead movement into press/release/move/scroll calls."""

    def __init__(self, store: TimelineStore, injector: Injector, logger: Optional[StatusLogger] = None) -> None:
        self.store = store
        self.injector = injector
        self.logger = logger or StatusLogger()
        self._active: Dict[uuid.UUID, _Active] = {}

    @property
    def active_ids(self):
        return set(self._active)

    def advance(self, previous: Optional[float], now: float) -> None:
        """
        Emit everything due between ``previous`` (exclusive) and ``now``.

        ``previous=None`` means playback just started at ``now``. Moving
        backwards releases everything first and starts over at ``now``.
        """
        if previous is not None and now < previous:
            self.reset()
            previous = None

        seen = set()
        for keyframe in self.store.in_time_order():
            seen.add(keyframe.id)
            was_active = keyframe.id in self._active
            if not keyframe.enabled:
                if was_active:
                    self._exit(keyframe.id)
                continue

            inside = keyframe.timestamp <= now <= keyframe.end
            if inside and not was_active:
                self._enter(keyframe, now)
            elif inside:
                self._update(keyframe.id, now)
            elif was_active:
                self._exit(keyframe.id)
            elif previous is not None and previous < keyframe.timestamp and keyframe.end < now:
                # Shorter than one frame: still press and release it.
                self._enter(keyframe, keyframe.timestamp)
                self._exit(keyframe.id)

        for keyframe_id in [kid for kid in self._active if kid not in seen]:
            self._exit(keyframe_id)

    def reset(self) -> None:
        """Release anything still held and forget active keyframes."""
        for keyframe_id in list(self._active):
            try:
                self._exit(keyframe_id, final_move=False)
            except InjectionError as e:
                self.logger.log_warning(f"Could not release {self._describe(keyframe_id)}: {e}")
                self._active.pop(keyframe_id, None)

    # Emission ---------------------------------------------------------

    def _enter(self, keyframe: Keyframe, now: float) -> None:
        variant = keyframe.variant
        active = _Active(keyframe)
        self._active[keyframe.id] = active
        if isinstance(variant, KeyPress):
            self.injector.press_key(variant.key)
        elif isinstance(variant, MouseButton):
            self.injector.press_button(variant.button)
        elif isinstance(variant, MouseMove):
            active.origin = self.injector.position()
            self._glide(active, now)
        elif isinstance(variant, Scroll):
            self.injector.scroll(variant.dx, variant.dy)

    def _update(self, keyframe_id: uuid.UUID, now: float) -> None:
        active = self._active[keyframe_id]
        if isinstance(active.keyframe.variant, MouseMove):
            self._glide(active, now)

    def _exit(self, keyframe_id: uuid.UUID, final_move: bool = True) -> None:
        active = self._active[keyframe_id]
        variant = active.keyframe.variant
        if isinstance(variant, KeyPress):
            self.injector.release_key(variant.key)
        elif isinstance(variant, MouseButton):
            self.injector.release_button(variant.button)
        elif isinstance(variant, MouseMove) and final_move:
            target = (variant.x, variant.y)
            if active.last_position != target:
                self.injector.move_to(*target)
        del self._active[keyframe_id]

    def _glide(self, active: _Active, now: float) -> None:
        keyframe = active.keyframe
        variant = keyframe.variant
        target = (variant.x, variant.y)
        origin = active.origin or target
        if keyframe.duration <= 0:
            progress = 1.0
        else:
            progress = min(1.0, max(0.0, (now - keyframe.timestamp) / keyframe.duration))
        position = (
            round(origin[0] + (target[0] - origin[0]) * progress),
            round(origin[1] + (target[1] - origin[1]) * progress),
        )
        if position != active.last_position:
            self.injector.move_to(*position)
            active.last_position = position

    def _describe(self, keyframe_id: uuid.UUID) -> str:
        active = self._active.get(keyframe_id)
        return str(active.keyframe) if active else str(keyframe_id)
