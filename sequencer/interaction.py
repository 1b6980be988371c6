"""
Pointer interaction on the timeline: select, drag-move, drag-resize, hover.

The state machine only ever touches keyframes through the TimelineStore and
converts pixels to seconds through the Viewport, so the host can change the
zoom between any two pointer events.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from .history import Checkpoint, EditHistory, checkpoint
from .keyframe import Keyframe
from .store import TimelineStore
from .transform import Rect, Viewport, offset_to_time


EDGE_MARGIN = 3.0


class InteractionMode(Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class Edge(Enum):
    LEFT = "left"
    RIGHT = "right"


class CursorHint(Enum):
    DEFAULT = "default"
    POINTING_HAND = "pointing_hand"
    RESIZE_HORIZONTAL = "resize_horizontal"


@dataclass(frozen=True)
class Hit:
    """Result of hit-testing one pointer position."""
    keyframe_id: uuid.UUID
    edge: Optional[Edge] = None


@dataclass
class Gesture:
    """Book-keeping for the gesture in progress."""
    keyframe_id: Optional[uuid.UUID]
    press_x: float
    press_y: float
    anchor_x: float
    edge: Optional[Edge] = None
    additive: bool = False
    changed: bool = False


def drag_keyframes(keyframes: Iterable[Keyframe], delta_time: float) -> float:
    """
    Shift keyframes together by ``delta_time``.

    The delta is clamped so the earliest keyframe does not go below zero.
    Returns the delta actually applied.
    """
    group = list(keyframes)
    if not group:
        return 0.0
    applied = max(delta_time, -min(kf.timestamp for kf in group))
    for keyframe in group:
        keyframe.set_timestamp(keyframe.timestamp + applied)
    return applied


def resize_keyframe(keyframe: Keyframe, edge: Edge, delta_time: float) -> float:
    """
    Move one edge of a keyframe by ``delta_time``.

    Right edge: duration grows or shrinks, never below zero.
    Left edge: the start moves while the end stays put; clamped so that
    both timestamp and duration stay non-negative.
    Returns the delta actually applied.
    """
    if edge is Edge.RIGHT:
        before = keyframe.duration
        keyframe.set_duration(keyframe.duration + delta_time)
        return keyframe.duration - before

    applied = min(max(delta_time, -keyframe.timestamp), keyframe.duration)
    end = keyframe.end
    keyframe.set_timestamp(keyframe.timestamp + applied)
    keyframe.set_duration(end - keyframe.timestamp)
    return applied


def edge_margin(rect: Rect) -> float:
    """Resize zone width; narrow keyframes keep the middle half for dragging."""
    return min(EDGE_MARGIN, rect.width / 4)


class TimelineInteraction:
    """Consumes pointer events and edits the store accordingly."""

    def __init__(
        self,
        store: TimelineStore,
        viewport: Optional[Viewport] = None,
        history: Optional[EditHistory] = None,
    ) -> None:
        self.store = store
        self.viewport = viewport or Viewport()
        self.history = history
        self.mode = InteractionMode.IDLE
        self.cursor_hint = CursorHint.DEFAULT
        self.gesture: Optional[Gesture] = None
        self.selection_rect: Optional[Rect] = None
        self._before: Optional[Checkpoint] = None
        self._selection_before: List[uuid.UUID] = []

    # Hit testing ------------------------------------------------------

    def keyframe_rect(self, keyframe: Keyframe) -> Optional[Rect]:
        return self.viewport.keyframe_rect(keyframe.timestamp, keyframe.duration, keyframe.lane)

    def hit_test(self, x: float, y: float) -> Optional[Hit]:
        """Edge zones win over bodies; later keyframes are on top."""
        lane = self.viewport.lane_at(y)
        if lane is None:
            return None
        candidates = []
        for keyframe in reversed(self.store.iter_lane(lane)):
            rect = self.keyframe_rect(keyframe)
            if rect is not None and rect.y0 <= y <= rect.y1:
                candidates.append((keyframe, rect))

        for keyframe, rect in candidates:
            left_gap = abs(x - rect.x0)
            right_gap = abs(x - rect.x1)
            if min(left_gap, right_gap) <= edge_margin(rect):
                edge = Edge.LEFT if left_gap < right_gap else Edge.RIGHT
                return Hit(keyframe.id, edge)

        for keyframe, rect in candidates:
            if rect.contains(x, y):
                return Hit(keyframe.id)
        return None

    def hover(self, x: float, y: float) -> CursorHint:
        hit = self.hit_test(x, y)
        if hit is None:
            self.cursor_hint = CursorHint.DEFAULT
        elif hit.edge is not None:
            self.cursor_hint = CursorHint.RESIZE_HORIZONTAL
        else:
            self.cursor_hint = CursorHint.POINTING_HAND
        return self.cursor_hint

    # Pointer events ---------------------------------------------------

    def pointer_press(self, x: float, y: float, additive: bool = False) -> InteractionMode:
        if self.mode is not InteractionMode.IDLE:
            return self.mode

        hit = self.hit_test(x, y)
        self._before = checkpoint(self.store) if self.history is not None else None

        if hit is None:
            self._selection_before = self.store.selected_ids if additive else []
            if not additive:
                self.store.deselect()
            self.gesture = Gesture(None, x, y, x, additive=additive)
            self.mode = InteractionMode.SELECTING
            return self.mode

        self.mode = InteractionMode.SELECTING
        if additive:
            self.store.toggle_selection(hit.keyframe_id)
            if not self.store.is_selected(hit.keyframe_id):
                self.mode = InteractionMode.IDLE
                return self.mode
        elif self.store.is_selected(hit.keyframe_id):
            self.store.select(hit.keyframe_id, additive=True)
        else:
            self.store.select(hit.keyframe_id)

        self.gesture = Gesture(hit.keyframe_id, x, y, x, edge=hit.edge, additive=additive)
        if hit.edge is not None:
            self.mode = InteractionMode.RESIZING
            self.cursor_hint = CursorHint.RESIZE_HORIZONTAL
        return self.mode

    def pointer_move(self, x: float, y: float, button_held: bool = True) -> CursorHint:
        gesture = self.gesture
        if not button_held or gesture is None or self.mode is InteractionMode.IDLE:
            return self.hover(x, y)

        if self.mode is InteractionMode.SELECTING:
            if gesture.keyframe_id is None:
                self._update_box_selection(gesture, x, y)
                return self.cursor_hint
            self.mode = InteractionMode.DRAGGING
            self.cursor_hint = CursorHint.POINTING_HAND

        delta_time = offset_to_time(x - gesture.anchor_x, self.viewport.scale)
        if self.mode is InteractionMode.DRAGGING:
            selected = [kf for kf in self.store if self.store.is_selected(kf.id)]
            applied = drag_keyframes(selected, delta_time)
        else:
            keyframe = self.store.get(gesture.keyframe_id)  # type: ignore[arg-type]
            applied = resize_keyframe(keyframe, gesture.edge, delta_time) if keyframe else 0.0
        gesture.changed = gesture.changed or applied != 0.0
        # The anchor follows the pointer even when the edit was clamped.
        gesture.anchor_x = x
        return self.cursor_hint

    def pointer_release(self, x: float, y: float) -> None:
        gesture = self.gesture
        if gesture is not None:
            if self.mode is InteractionMode.SELECTING and gesture.keyframe_id is not None:
                if not gesture.additive:
                    self.store.select(gesture.keyframe_id)
            elif self.mode in (InteractionMode.DRAGGING, InteractionMode.RESIZING):
                if gesture.changed and self.history is not None and self._before is not None:
                    self.history.push(self._before)

        self.mode = InteractionMode.IDLE
        self.gesture = None
        self.selection_rect = None
        self._before = None
        self._selection_before = []
        self.hover(x, y)

    def cancel(self) -> None:
        """Abort any gesture without touching the selection or keyframes."""
        self.mode = InteractionMode.IDLE
        self.gesture = None
        self.selection_rect = None
        self._before = None

    def _update_box_selection(self, gesture: Gesture, x: float, y: float) -> None:
        box = Rect(gesture.press_x, gesture.press_y, x, y).normalized()
        self.selection_rect = box
        self.store.deselect()
        for keyframe_id in self._selection_before:
            self.store.select(keyframe_id, additive=True)
        for keyframe in self.store:
            rect = self.keyframe_rect(keyframe)
            if rect is not None and rect.intersects(box):
                self.store.select(keyframe.id, additive=True)
