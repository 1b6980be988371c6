"""
Sequencer package: record, edit and replay keyboard and mouse input on a timeline.

Key parts
---------
- keyframe:    Keyframe record and its action variants (key, button, move, scroll, wait)
- store:       Ordered keyframe collection with selection
- transform:   Time <-> pixel mapping for the timeline canvas
- interaction: Pointer gestures on the canvas (select, drag, resize, box select)
- clock:       Playhead that advances from frame deltas
- recorder:    Captured input events -> keyframes
- player:      Playhead movement -> injected input
- codec:       Session snapshot <-> JSON document
- engine:      Owns all of the above and exposes the control surface

Nothing here spawns threads or touches the GUI toolkit; the host drives
the engine with ``tick`` from its own frame loop.
"""

from .codec import Snapshot, SnapshotError
from .engine import ControlCommand, EngineState, SequencerEngine
from .events import CaptureEvent, CaptureQueue, EventKind
from .injection import InjectionError, InputInjector
from .keyframe import Keyframe, KeyPress, Lane, MouseButton, MouseMove, Scroll, Wait
from .store import TimelineStore

__all__ = [
    "CaptureEvent",
    "CaptureQueue",
    "ControlCommand",
    "EngineState",
    "EventKind",
    "InjectionError",
    "InputInjector",
    "KeyPress",
    "Keyframe",
    "Lane",
    "MouseButton",
    "MouseMove",
    "Scroll",
    "SequencerEngine",
    "Snapshot",
    "SnapshotError",
    "TimelineStore",
    "Wait",
]
