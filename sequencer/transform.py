"""
Time <-> screen coordinate mapping for the timeline.

The timeline is divided into labeled tick columns. The pixel pitch of one
second grows with the zoom scale, so a higher scale shows fewer seconds per
pixel. Everything in this module is pure: no state, no side effects.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from .keyframe import Lane


BASE_PITCH = 20.0
PITCH_SPAN = 40.0
MIN_SCALE = 0.01
MAX_SCALE = 1.0
DEFAULT_SCALE = 0.5

MIN_RECT_WIDTH = 3.0
ROW_HEIGHT = 24.0
ROW_PADDING = 3.0
LEFT_MARGIN = 4.0

ZOOM_STEP = 0.01
SCROLL_STEP = 0.0125

LANE_ROWS = {Lane.KEYBOARD: 0, Lane.POINTER: 1}


def pitch(scale: float) -> float:
    """Pixels per timeline second for a zoom scale."""
    return BASE_PITCH + scale * PITCH_SPAN


def column_count(view_width: float, scale: float) -> float:
    """Number of one-second tick columns that fit in the view."""
    return view_width / pitch(scale)


def time_to_offset(t: float, scale: float, view_width: float = 0.0) -> float:
    """
    Map a time to a horizontal pixel offset.

    ``view_width`` only determines how many columns are shown; the pitch of a
    column is the view width divided by the column count, which is
    independent of the width itself.
    """
    if view_width > 0:
        return t * (view_width / column_count(view_width, scale))
    return t * pitch(scale)


def offset_to_time(offset: float, scale: float, view_width: float = 0.0) -> float:
    """Inverse of :func:`time_to_offset`."""
    if view_width > 0:
        return offset / (view_width / column_count(view_width, scale))
    return offset / pitch(scale)


def tick_times(view_width: float, scale: float, scroll: float = 0.0) -> List[float]:
    """Whole-second tick positions visible in a view starting at ``scroll``."""
    first = math.ceil(scroll)
    last = scroll + column_count(view_width, scale)
    return [float(t) for t in range(first, int(math.floor(last)) + 1)]


def zoom(scale: float, delta: float) -> float:
    return min(MAX_SCALE, max(MIN_SCALE, scale + delta * ZOOM_STEP))


def scroll(offset: float, delta: float, scale: float) -> float:
    return max(0.0, offset + (delta * SCROLL_STEP) / max(scale, 0.5))


@dataclass(frozen=True)
class Rect:
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def normalized(self) -> "Rect":
        return Rect(min(self.x0, self.x1), min(self.y0, self.y1), max(self.x0, self.x1), max(self.y0, self.y1))

    def contains(self, x: float, y: float) -> bool:
        return self.x0 <= x <= self.x1 and self.y0 <= y <= self.y1

    def intersects(self, other: "Rect") -> bool:
        a, b = self.normalized(), other.normalized()
        return a.x0 <= b.x1 and b.x0 <= a.x1 and a.y0 <= b.y1 and b.y0 <= a.y1


def time_to_rect(
    timestamp: float,
    duration: float,
    scale: float,
    visible_width: float,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
    height: float = ROW_HEIGHT - 2 * ROW_PADDING,
    scroll_offset: float = 0.0,
) -> Optional[Rect]:
    """
    Rectangle for a (time, duration) pair inside a lane.

    The width never drops below ``MIN_RECT_WIDTH`` so zero-length keyframes
    stay clickable. The rectangle is clipped to ``[0, visible_width]``; a
    keyframe fully outside that window returns None. A ``visible_width`` of 0
    disables clipping.
    """
    x0 = time_to_offset(timestamp - scroll_offset, scale) + LEFT_MARGIN
    x1 = x0 + max(time_to_offset(duration, scale), MIN_RECT_WIDTH)
    if visible_width > 0:
        if x0 > visible_width or x1 < 0:
            return None
        x1 = min(x1, visible_width - 1.0)
        x0 = max(x0, 0.0)
    return Rect(origin_x + x0, origin_y, origin_x + x1, origin_y + height)


@dataclass(frozen=True)
class Viewport:
    """Screen placement and zoom of the timeline area."""
    left: float = 0.0
    top: float = 0.0
    width: float = 800.0
    scale: float = DEFAULT_SCALE
    scroll: float = 0.0

    def x_for_time(self, t: float) -> float:
        return self.left + LEFT_MARGIN + time_to_offset(t - self.scroll, self.scale)

    def time_for_x(self, x: float) -> float:
        return offset_to_time(x - self.left - LEFT_MARGIN, self.scale) + self.scroll

    def lane_top(self, lane: Lane) -> float:
        return self.top + LANE_ROWS[lane] * ROW_HEIGHT + ROW_PADDING

    def lane_at(self, y: float) -> Optional[Lane]:
        for lane, row in LANE_ROWS.items():
            top = self.top + row * ROW_HEIGHT
            if top <= y < top + ROW_HEIGHT:
                return lane
        return None

    def keyframe_rect(self, timestamp: float, duration: float, lane: Lane) -> Optional[Rect]:
        return time_to_rect(
            timestamp,
            duration,
            self.scale,
            self.width,
            origin_x=self.left,
            origin_y=self.lane_top(lane),
            scroll_offset=self.scroll,
        )
