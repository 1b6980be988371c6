"""
Keyframe data model for the sequencer.

A keyframe is one scheduled automation action: a start time, a duration and a
typed payload (the variant). The variant alone decides what kind of keyframe
it is and which timeline lane it lives in.
"""

from __future__ import annotations

import string
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union


MOVE_DURATION = 0.1
SCROLL_DURATION = 0.1

BUTTONS = frozenset({"left", "right", "middle"})

_SPECIAL_KEYS = (
    "alt", "alt_l", "alt_r", "alt_gr", "backspace", "caps_lock", "cmd", "cmd_l", "cmd_r",
    "ctrl", "ctrl_l", "ctrl_r", "delete", "down", "end", "enter", "esc", "home", "insert",
    "left", "menu", "num_lock", "page_down", "page_up", "pause", "print_screen", "right",
    "scroll_lock", "shift", "shift_l", "shift_r", "space", "tab", "up",
)
# Shifted symbols ("!", ":", "<") are recorded as the character typed.
_CHARACTER_KEYS = tuple(string.ascii_lowercase + string.digits + string.punctuation)
_FUNCTION_KEYS = tuple(f"f{n}" for n in range(1, 21))

KNOWN_KEYS = frozenset(_SPECIAL_KEYS + _CHARACTER_KEYS + _FUNCTION_KEYS)


class Lane(Enum):
    """Timeline row a keyframe renders and interacts in."""
    KEYBOARD = "keyboard"
    POINTER = "pointer"


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class MouseButton:
    button: str


@dataclass(frozen=True)
class MouseMove:
    x: int
    y: int


@dataclass(frozen=True)
class Scroll:
    dx: int
    dy: int


@dataclass(frozen=True)
class Wait:
    seconds: float


Variant = Union[KeyPress, MouseButton, MouseMove, Scroll, Wait]


def is_known_key(key: object) -> bool:
    return isinstance(key, str) and key in KNOWN_KEYS


def is_known_button(button: object) -> bool:
    return isinstance(button, str) and button in BUTTONS


def lane_for(variant: Variant) -> Lane:
    """Key presses live on the keyboard lane, everything else on the pointer lane."""
    if isinstance(variant, KeyPress):
        return Lane.KEYBOARD
    return Lane.POINTER


@dataclass
class Keyframe:
    """
    One automation action on the timeline.

    Duration semantics depend on the variant:
    - KeyPress / MouseButton: hold time between press and release
    - MouseMove: window over which the pointer glides to the target
    - Scroll: instantaneous, the duration only gives it a visible width
    - Wait: always equal to ``variant.seconds``
    """
    timestamp: float
    duration: float
    variant: Variant
    enabled: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self):
        self.timestamp = max(0.0, float(self.timestamp))
        if isinstance(self.variant, Wait):
            self.duration = max(0.0, float(self.variant.seconds))
        else:
            self.duration = max(0.0, float(self.duration))

    # Construction helpers ---------------------------------------------

    @classmethod
    def key_press(cls, timestamp: float, key: str, duration: float = 0.0) -> "Keyframe":
        return cls(timestamp=timestamp, duration=duration, variant=KeyPress(key))

    @classmethod
    def mouse_button(cls, timestamp: float, button: str, duration: float = 0.0) -> "Keyframe":
        return cls(timestamp=timestamp, duration=duration, variant=MouseButton(button))

    @classmethod
    def mouse_move(cls, timestamp: float, x: int, y: int, duration: float = MOVE_DURATION) -> "Keyframe":
        return cls(timestamp=timestamp, duration=duration, variant=MouseMove(int(x), int(y)))

    @classmethod
    def scroll(cls, timestamp: float, dx: int, dy: int) -> "Keyframe":
        return cls(timestamp=timestamp, duration=SCROLL_DURATION, variant=Scroll(int(dx), int(dy)))

    @classmethod
    def wait(cls, timestamp: float, seconds: float) -> "Keyframe":
        seconds = max(0.0, float(seconds))
        return cls(timestamp=timestamp, duration=seconds, variant=Wait(seconds))

    # Mutation helpers -------------------------------------------------

    def set_timestamp(self, value: float) -> None:
        self.timestamp = max(0.0, float(value))

    def set_duration(self, value: float) -> None:
        """Clamp to zero; for waits the payload follows the duration."""
        self.duration = max(0.0, float(value))
        if isinstance(self.variant, Wait):
            self.variant = Wait(self.duration)

    def duplicate(self) -> "Keyframe":
        """Copy with a fresh id."""
        return replace(self, id=uuid.uuid4())

    # Derived values ---------------------------------------------------

    @property
    def lane(self) -> Lane:
        return lane_for(self.variant)

    @property
    def end(self) -> float:
        return self.timestamp + self.duration

    def label(self) -> str:
        """Short caption drawn inside the keyframe rectangle."""
        variant = self.variant
        if isinstance(variant, KeyPress):
            return variant.key
        if isinstance(variant, MouseButton):
            return {"left": "⏴", "right": "⏵", "middle": "◼"}.get(variant.button, "")
        if isinstance(variant, Scroll):
            if variant.dx != 0:
                return "⬌"
            return "⬍" if variant.dy != 0 else ""
        if isinstance(variant, Wait):
            return f"{variant.seconds:g}s"
        return ""

    def __str__(self) -> str:
        return f"{type(self.variant).__name__}@{self.timestamp:.3f}s+{self.duration:.3f}s"
