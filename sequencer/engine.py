"""
Sequencer engine - the object the host loop owns.

The engine wires the store, clock, recorder, player, undo history and pointer
interaction together and exposes the control surface (record, play, reset,
step, new, save, load, clipboard, undo). It never spawns threads: the host
calls :meth:`SequencerEngine.tick` once per frame. Other threads talk to it
only through :meth:`post` and the capture queue, both drained inside
``tick``.
"""

from __future__ import annotations

import copy
import queue
import time
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from logger import StatusLogger

from . import codec, transform
from .clock import PlaybackClock, WallDelta
from .events import CaptureQueue, EventKind
from .history import EditHistory
from .injection import InjectionError, InputInjector
from .interaction import TimelineInteraction
from .keyframe import Keyframe, MouseButton, MouseMove, is_known_button
from .player import Injector, Player
from .recorder import Recorder
from .store import TimelineStore


PASTE_OFFSET = 1.0
STOP_CLICK_TOLERANCE = 0.04
MAX_EDIT_TIMESTAMP = 3600.0
MAX_EDIT_DURATION = 100.0


class ControlCommand(Enum):
    """Requests other threads (hotkeys) may post to the engine."""
    TOGGLE_RECORDING = "toggle_recording"
    TOGGLE_PLAY = "toggle_play"
    STOP_PLAYBACK = "stop_playback"
    RESET_TIME = "reset_time"
    STEP_TIME = "step_time"
    ADD_MOVE_KEYFRAME = "add_move_keyframe"


class EngineState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    RECORDING = "recording"
    ERROR = "error"


FailsafeCheck = Callable[[int, int], bool]


class SequencerEngine:
    """
    Owns one editing session.

    Mutating methods are meant to be called from the thread that runs the
    frame loop. ``post`` and the capture queue are the only thread-safe
    entry points.
    """

    def __init__(
        self,
        injector: Optional[Injector] = None,
        logger: Optional[StatusLogger] = None,
        capture_queue: Optional[CaptureQueue] = None,
        move_resolution: int = 1,
        ignored_keys: Tuple[str, ...] = (),
        clear_before_recording: bool = True,
        failsafe: Optional[FailsafeCheck] = None,
        host_clock: Callable[[], float] = time.monotonic,
        scale: float = transform.DEFAULT_SCALE,
        speed: float = 1.0,
        repeats: int = 1,
    ) -> None:
        self.logger = logger or StatusLogger()
        self.store = TimelineStore()
        self.clock = PlaybackClock(rate=speed)
        self.history = EditHistory()
        self.recorder = Recorder(
            self.store, self.logger, move_resolution=move_resolution, ignored_keys=ignored_keys
        )
        self.player = Player(self.store, injector or InputInjector(self.logger), self.logger)
        self.interaction = TimelineInteraction(
            self.store, transform.Viewport(scale=scale), history=self.history
        )
        self.capture_queue = capture_queue or CaptureQueue()
        self.clear_before_recording = clear_before_recording
        self.failsafe = failsafe
        self.repeats = max(1, int(repeats))
        self.clipboard: List[Keyframe] = []
        self.modified = False
        self.last_error: Optional[Exception] = None
        self.last_pointer: Optional[Tuple[int, int]] = None

        self._host_clock = host_clock
        self._commands: "queue.Queue[ControlCommand]" = queue.Queue()
        self._repeats_left = self.repeats
        self._previous_time: Optional[float] = None

    # State ------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        if self.recorder.recording:
            return EngineState.RECORDING
        if self.clock.playing:
            return EngineState.PLAYING
        if self.last_error is not None:
            return EngineState.ERROR
        return EngineState.IDLE

    @property
    def recording(self) -> bool:
        return self.recorder.recording

    @property
    def playing(self) -> bool:
        return self.clock.playing

    @property
    def time(self) -> float:
        return self.clock.time

    @property
    def speed(self) -> float:
        return self.clock.rate

    @speed.setter
    def speed(self, value: float) -> None:
        self.clock.rate = value

    @property
    def viewport(self) -> transform.Viewport:
        return self.interaction.viewport

    @property
    def scale(self) -> float:
        return self.viewport.scale

    @scale.setter
    def scale(self, value: float) -> None:
        value = min(transform.MAX_SCALE, max(transform.MIN_SCALE, value))
        self.interaction.viewport = replace(self.viewport, scale=value)

    # Frame loop -------------------------------------------------------

    def post(self, command: ControlCommand) -> None:
        """Thread-safe: queue a command for the next tick."""
        self._commands.put(command)

    def tick(self, wall_delta: WallDelta) -> None:
        """Advance one frame: captured input, posted commands, then time."""
        self._drain_capture()
        self._process_commands()

        if self.recorder.recording:
            self.clock.advance(wall_delta)
            return
        if not self.clock.playing:
            return

        self.clock.tick(wall_delta)
        try:
            self.player.advance(self._previous_time, self.clock.time)
            self._previous_time = self.clock.time
            self._handle_end_of_sequence()
        except InjectionError as e:
            self.abort(e)

    def _handle_end_of_sequence(self) -> None:
        if len(self.store) == 0 or self.clock.time < self.store.end_time():
            return
        if self._repeats_left > 1:
            self._repeats_left -= 1
            self.player.reset()
            self.clock.reset()
            self.logger.log_info(f"Repeating sequence, {self._repeats_left} run(s) left")
            self._begin_pass()
            return
        self._stop_playback()
        self._notify_status("Playback finished")

    def _process_commands(self) -> None:
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            if command is ControlCommand.TOGGLE_RECORDING:
                self.toggle_recording()
            elif command is ControlCommand.TOGGLE_PLAY:
                self.toggle_play()
            elif command is ControlCommand.STOP_PLAYBACK:
                if self.clock.playing:
                    self._stop_playback()
                    self._notify_status("Playback stopped")
            elif command is ControlCommand.RESET_TIME:
                self.reset_time()
            elif command is ControlCommand.STEP_TIME:
                self.step_time()
            elif command is ControlCommand.ADD_MOVE_KEYFRAME:
                self.add_pointer_keyframe()

    def _drain_capture(self) -> None:
        for event in self.capture_queue.drain():
            if event.kind is EventKind.POINTER_MOVE:
                self._track_pointer(event.payload)
            if self.recorder.recording and self.recorder.feed(event) is not None:
                self.modified = True

    def _track_pointer(self, payload: Any) -> None:
        try:
            x, y = int(payload[0]), int(payload[1])
        except (TypeError, ValueError, IndexError):
            return
        self.last_pointer = (x, y)
        if self.clock.playing and self.failsafe is not None and self.failsafe(x, y):
            self._stop_playback()
            self.logger.log_warning(f"Failsafe edge crossed at ({x}, {y}); playback stopped")
            self._notify_status("Playback stopped by failsafe")

    # Control surface --------------------------------------------------

    def toggle_play(self) -> bool:
        """Start or pause playback; returns the new play flag."""
        if self.recorder.recording:
            self.logger.log_warning("Cannot play while recording")
            return False
        if self.clock.playing:
            self._stop_playback()
            self._notify_status("Playback paused")
            return False

        self.store.deselect()
        self.last_error = None
        self._repeats_left = self.repeats
        self._previous_time = None
        if len(self.store) and self.clock.time >= self.store.end_time():
            self.clock.reset()
        self.clock.play()
        self._notify_status("Playback started")
        try:
            self._begin_pass()
        except InjectionError as e:
            self.abort(e)
        return self.clock.playing

    def _begin_pass(self) -> None:
        # Keyframes already under the playhead start immediately.
        self.player.advance(None, self.clock.time)
        self._previous_time = self.clock.time

    def _stop_playback(self) -> None:
        self.clock.pause()
        self._previous_time = None
        try:
            self.player.reset()
        except InjectionError as e:
            self.logger.log_error(f"Failed to release input: {e}")

    def reset_time(self) -> None:
        self.clock.reset()
        self.player.reset()
        self._previous_time = None

    def step_time(self) -> None:
        self.clock.step()

    def seek(self, t: float) -> None:
        self.clock.seek(t)
        self.player.reset()
        self._previous_time = None

    def toggle_recording(self) -> bool:
        """Start or stop recording; returns True while recording."""
        if self.recorder.recording:
            self._stop_recording()
            return False

        if self.clock.playing:
            self._stop_playback()
        self.history.record(self.store)
        if self.clear_before_recording:
            self.store.clear()
            self.clock.reset()
        self.last_error = None
        self.capture_queue.drain()
        self.recorder.start(host_time=self._host_clock(), timeline_time=self.clock.time)
        self._notify_status("Recording started")
        return True

    def _stop_recording(self) -> None:
        self._drain_capture()
        recorded = self.recorder.stop(self.clock.time)
        if recorded:
            self._discard_stop_click(recorded)
            self.modified = True
        if self.clear_before_recording:
            self.clock.reset()
        self._notify_status(f"Recording stopped, {len(recorded)} keyframe(s) captured")

    def _discard_stop_click(self, recorded: List[Keyframe]) -> None:
        # The click on the stop button is the last thing captured.
        last = max(recorded, key=lambda kf: kf.end)
        if (
            isinstance(last.variant, MouseButton)
            and last.variant.button == "left"
            and abs(last.end - self.clock.time) <= STOP_CLICK_TOLERANCE
        ):
            self.store.remove(last.id)
            recorded.remove(last)

    def abort(self, error: Exception) -> None:
        """Stop the current play or record operation after a collaborator failure."""
        self.last_error = error
        if self.recorder.recording:
            self.recorder.stop(self.clock.time)
        if self.clock.playing:
            self._stop_playback()
        self.logger.log_error(f"Operation aborted: {error}")
        self._notify_status(f"Error: {error}")

    def new(self) -> None:
        """Discard the session: empty timeline, time zero, no history."""
        if self.recorder.recording:
            self.recorder.stop(self.clock.time)
        if self.clock.playing:
            self._stop_playback()
        self.interaction.cancel()
        self.store.clear()
        self.history.clear()
        self.clock.reset()
        self.player.reset()
        self._previous_time = None
        self.modified = False
        self.last_error = None

    # Persistence ------------------------------------------------------

    def snapshot(self) -> codec.Snapshot:
        return codec.to_snapshot(self.store, scale=self.scale, speed=self.speed, repeats=self.repeats)

    def save(self) -> Dict[str, Any]:
        """The session as a JSON-ready document."""
        return codec.snapshot_to_dict(self.snapshot())

    def load(self, snapshot: Union[codec.Snapshot, Dict[str, Any]]) -> None:
        """
        Replace the whole session.

        A document is fully decoded before anything changes, so a
        SnapshotError leaves the current session untouched.
        """
        if not isinstance(snapshot, codec.Snapshot):
            snapshot = codec.snapshot_from_dict(snapshot)
        restored = codec.from_snapshot(snapshot)

        self.new()
        self.store.replace_all(restored)
        self.store.deselect()
        self.scale = snapshot.scale
        self.speed = snapshot.speed
        self.repeats = snapshot.repeats
        self._repeats_left = self.repeats

    def save_to_path(self, path: Union[str, Path]) -> None:
        codec.write_file(Path(path), self.snapshot())
        self.modified = False
        self._notify_status(f"Saved {len(self.store)} keyframe(s) to {path}")

    def load_from_path(self, path: Union[str, Path]) -> None:
        self.load(codec.read_file(Path(path)))
        self._notify_status(f"Loaded {len(self.store)} keyframe(s) from {path}")

    # Editing ----------------------------------------------------------

    def _editing_locked(self, action: str) -> bool:
        """True while recording, when timeline edits are refused."""
        if self.recorder.recording:
            self.logger.log_warning(f"Cannot {action} while recording")
            return True
        return False

    def add_keyframe(self, keyframe: Keyframe) -> Keyframe:
        self.history.record(self.store)
        self.store.add(keyframe)
        self.store.select(keyframe.id)
        self.modified = True
        return keyframe

    def add_pointer_keyframe(self) -> Optional[Keyframe]:
        """Insert a move to the last seen pointer position at the playhead."""
        if self.last_pointer is None:
            self.logger.log_warning("No pointer position captured yet")
            return None
        return self.add_keyframe(Keyframe.mouse_move(self.clock.time, *self.last_pointer))

    def delete_selected(self) -> int:
        if self._editing_locked("delete"):
            return 0
        if not self.store.selected_ids:
            return 0
        self.history.record(self.store)
        removed = self.store.remove_selected()
        self.modified = True
        self.logger.log_info(f"Deleted {len(removed)} keyframe(s)")
        return len(removed)

    def copy(self) -> int:
        selected = [kf for kf in self.store.in_time_order() if self.store.is_selected(kf.id)]
        if selected:
            self.clipboard = copy.deepcopy(selected)
            self.logger.log_info(f"Copied {len(selected)} keyframe(s)")
        return len(selected)

    def cut(self) -> int:
        if self._editing_locked("cut"):
            return 0
        count = self.copy()
        if count:
            self.delete_selected()
        return count

    def paste(self) -> List[Keyframe]:
        """Insert clipboard copies with fresh ids, shifted so they stand out."""
        if self._editing_locked("paste"):
            return []
        if not self.clipboard:
            return []
        self.history.record(self.store)
        self.store.deselect()
        pasted = []
        for original in self.clipboard:
            keyframe = original.duplicate()
            keyframe.set_timestamp(original.timestamp + PASTE_OFFSET)
            self.store.add(keyframe)
            self.store.select(keyframe.id, additive=True)
            pasted.append(keyframe)
        self.modified = True
        return pasted

    def enable_selected(self, enabled: bool) -> int:
        if self._editing_locked("change keyframes"):
            return 0
        ids = self.store.selected_ids
        if not ids:
            return 0
        self.history.record(self.store)
        changed = self.store.set_enabled(ids, enabled)
        self.modified = self.modified or changed > 0
        return changed

    def selected_keyframe(self) -> Optional[Keyframe]:
        """The primary selection shown in the property panel."""
        selected_id = self.store.selected_id
        return self.store.get(selected_id) if selected_id is not None else None

    def edit_selected(
        self,
        timestamp: Optional[float] = None,
        duration: Optional[float] = None,
        button: Optional[str] = None,
    ) -> Optional[Keyframe]:
        """
        Numeric edit of the primary selection as one undo step.

        Timestamp is clamped to [0, 3600] s and duration to [0, 100] s.
        ``button`` only applies to mouse button keyframes; an unknown button
        raises ValueError before anything changes. Returns the keyframe, or
        None when nothing was edited.
        """
        if self._editing_locked("edit keyframes"):
            return None
        keyframe = self.selected_keyframe()
        if keyframe is None:
            return None
        if button is not None:
            if not isinstance(keyframe.variant, MouseButton):
                raise ValueError(f"{keyframe} has no mouse button to change")
            if not is_known_button(button):
                raise ValueError(f"Unknown mouse button {button!r}")

        new_timestamp = keyframe.timestamp if timestamp is None else min(max(0.0, timestamp), MAX_EDIT_TIMESTAMP)
        new_duration = keyframe.duration if duration is None else min(max(0.0, duration), MAX_EDIT_DURATION)
        new_variant = keyframe.variant if button is None else MouseButton(button)
        if (new_timestamp, new_duration, new_variant) == (keyframe.timestamp, keyframe.duration, keyframe.variant):
            return None

        self.interaction.cancel()
        self.history.record(self.store)
        keyframe.set_timestamp(new_timestamp)
        keyframe.variant = new_variant
        keyframe.set_duration(new_duration)
        self.modified = True
        return keyframe

    def cull_minor_moves(self) -> int:
        """Drop every pointer move that is immediately followed by another move."""
        if self._editing_locked("cull moves"):
            return 0
        ordered = self.store.in_time_order()
        redundant = [
            current.id
            for current, following in zip(ordered, ordered[1:])
            if isinstance(current.variant, MouseMove) and isinstance(following.variant, MouseMove)
        ]
        if not redundant:
            return 0
        self.history.record(self.store)
        for keyframe_id in redundant:
            self.store.remove(keyframe_id)
        self.modified = True
        self.logger.log_info(f"Removed {len(redundant)} redundant move keyframe(s)")
        return len(redundant)

    def undo(self) -> bool:
        if self._editing_locked("undo"):
            return False
        self.interaction.cancel()
        done = self.history.undo(self.store)
        self.modified = self.modified or done
        return done

    def redo(self) -> bool:
        if self._editing_locked("redo"):
            return False
        self.interaction.cancel()
        done = self.history.redo(self.store)
        self.modified = self.modified or done
        return done

    # View -------------------------------------------------------------

    def zoom(self, delta: float) -> float:
        self.scale = transform.zoom(self.scale, delta)
        return self.scale

    def scroll(self, delta: float) -> float:
        offset = transform.scroll(self.viewport.scroll, delta, self.scale)
        self.interaction.viewport = replace(self.viewport, scroll=offset)
        return offset

    def resize_view(self, width: float, left: float = 0.0, top: float = 0.0) -> None:
        self.interaction.viewport = replace(self.viewport, width=width, left=left, top=top)

    def _notify_status(self, message: str) -> None:
        self.logger.update_status(message)
