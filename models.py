"""
Application-level models for Automate.

Keyframe, timeline and playback types live in the ``sequencer`` package;
this module holds the user preferences that survive between sessions.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Any

from sequencer.transform import DEFAULT_SCALE, MAX_SCALE, MIN_SCALE


class MonitorEdge(Enum):
    """Screen edge that stops playback when the pointer is pushed past it."""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"

    def is_crossed(self, x: int, y: int, width: int, height: int) -> bool:
        """True when ``(x, y)`` lies beyond this edge of a ``width`` x ``height`` screen."""
        if self is MonitorEdge.LEFT:
            return x < 0
        if self is MonitorEdge.RIGHT:
            return x > width
        if self is MonitorEdge.TOP:
            return y < 0
        return y > height


@dataclass
class ApplicationSettings:
    """Persisted application preferences."""

    record_hotkey: str = "F8"
    stop_hotkey: str = "Esc"
    add_keyframe_hotkey: str = "F9"
    mouse_move_resolution: int = 20
    clear_before_recording: bool = True
    failsafe_edge: MonitorEdge = MonitorEdge.RIGHT
    playback_speed: float = 1.0
    repeats: int = 1
    timeline_scale: float = DEFAULT_SCALE
    last_file: str = ""

    def __post_init__(self):
        """Clamp values that the engine cannot work with."""
        if self.mouse_move_resolution < 1:
            self.mouse_move_resolution = 1
        if self.playback_speed <= 0:
            raise ValueError("Playback speed must be positive")
        if self.repeats < 1:
            raise ValueError("Repeats must be at least 1")
        self.timeline_scale = min(MAX_SCALE, max(MIN_SCALE, self.timeline_scale))

    def hotkey_names(self) -> set:
        """Lowercase key names of all configured hotkeys, for the recorder to skip."""
        names = set()
        for hotkey in (self.record_hotkey, self.stop_hotkey, self.add_keyframe_hotkey):
            tokens = hotkey.replace("+", " ").split()
            if tokens:
                names.add(tokens[-1].lower())
        return names

    def to_dict(self) -> Dict[str, Any]:
        """Serialize settings to primitive types for JSON storage."""
        return {
            "record_hotkey": self.record_hotkey,
            "stop_hotkey": self.stop_hotkey,
            "add_keyframe_hotkey": self.add_keyframe_hotkey,
            "mouse_move_resolution": self.mouse_move_resolution,
            "clear_before_recording": self.clear_before_recording,
            "failsafe_edge": self.failsafe_edge.value,
            "playback_speed": self.playback_speed,
            "repeats": self.repeats,
            "timeline_scale": self.timeline_scale,
            "last_file": self.last_file,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ApplicationSettings":
        """Create settings instance from JSON dictionary."""
        return ApplicationSettings(
            record_hotkey=str(data.get("record_hotkey", "F8") or "F8"),
            stop_hotkey=str(data.get("stop_hotkey", "Esc") or "Esc"),
            add_keyframe_hotkey=str(data.get("add_keyframe_hotkey", "F9") or "F9"),
            mouse_move_resolution=int(data.get("mouse_move_resolution", 20) or 20),
            clear_before_recording=bool(data.get("clear_before_recording", True)),
            failsafe_edge=MonitorEdge(str(data.get("failsafe_edge", MonitorEdge.RIGHT.value))),
            playback_speed=float(data.get("playback_speed", 1.0) or 1.0),
            repeats=int(data.get("repeats", 1) or 1),
            timeline_scale=float(data.get("timeline_scale", DEFAULT_SCALE) or DEFAULT_SCALE),
            last_file=str(data.get("last_file", "") or ""),
        )
