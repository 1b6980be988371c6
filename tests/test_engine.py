"""
Tests for the sequencer engine control surface and frame loop.
"""
import pytest

from sequencer import ControlCommand, EngineState, SequencerEngine, SnapshotError
from sequencer.engine import MAX_EDIT_DURATION, MAX_EDIT_TIMESTAMP, PASTE_OFFSET
from sequencer.events import CaptureEvent, EventKind
from sequencer.keyframe import Keyframe, KeyPress, MouseButton, MouseMove


class TestPlayback:
    """Tests for play, pause, repeats and failures."""

    def test_plays_to_end_and_stops(self, engine, injector):
        engine.add_keyframe(Keyframe.key_press(0.0, "a", 0.1))
        assert engine.toggle_play()
        engine.tick(0.05)
        engine.tick(0.1)
        assert injector.calls == [("press_key", "a"), ("release_key", "a")]
        assert engine.state is EngineState.IDLE

    def test_repeats(self, engine, injector):
        """The sequence rewinds until all repeats have played."""
        engine.add_keyframe(Keyframe.key_press(0.0, "a", 0.1))
        engine.repeats = 2
        engine.toggle_play()
        for _ in range(4):
            engine.tick(0.1)
        assert injector.names() == ["press_key", "release_key", "press_key", "release_key"]
        assert not engine.playing

    def test_pause_releases_held_input(self, engine, injector):
        engine.add_keyframe(Keyframe.key_press(0.0, "a", 5.0))
        engine.toggle_play()
        engine.tick(0.1)
        assert not engine.toggle_play()
        assert injector.names() == ["press_key", "release_key"]

    def test_paused_tick_keeps_time(self, engine):
        engine.tick(1.0)
        assert engine.time == 0.0

    def test_injection_failure_aborts(self, logger, injector_factory):
        """A refused injection stops playback and is reported."""
        engine = SequencerEngine(injector=injector_factory(fail_on="press_key"), logger=logger)
        engine.add_keyframe(Keyframe.key_press(0.5, "a", 1.0))
        engine.toggle_play()
        engine.tick(0.6)
        assert engine.state is EngineState.ERROR
        assert engine.last_error is not None
        assert logger.get_all_logs("ERROR")

    def test_failsafe_stops_playback(self, injector, logger):
        engine = SequencerEngine(injector=injector, logger=logger, failsafe=lambda x, y: x > 100)
        engine.add_keyframe(Keyframe.key_press(5.0, "a", 1.0))
        engine.toggle_play()
        engine.capture_queue.put(CaptureEvent(EventKind.POINTER_MOVE, (150, 10), 0.0))
        engine.tick(0.1)
        assert not engine.playing
        assert engine.last_pointer == (150, 10)

    def test_posted_commands_run_on_tick(self, engine):
        engine.add_keyframe(Keyframe.key_press(5.0, "a", 1.0))
        engine.post(ControlCommand.TOGGLE_PLAY)
        assert not engine.playing
        engine.tick(0.0)
        assert engine.playing
        engine.post(ControlCommand.STOP_PLAYBACK)
        engine.tick(0.0)
        assert not engine.playing

    def test_step_and_reset(self, engine):
        engine.step_time()
        engine.step_time()
        assert engine.time == pytest.approx(0.2)
        engine.reset_time()
        assert engine.time == 0.0


class TestRecording:
    """Tests for recording through the capture queue."""

    def test_records_key_press(self, engine, host_clock):
        """Events are mapped onto the timeline relative to the record start."""
        assert engine.toggle_recording()
        engine.capture_queue.put(CaptureEvent(EventKind.KEY_DOWN, "A", host_clock.now + 1.0))
        engine.capture_queue.put(CaptureEvent(EventKind.KEY_UP, "A", host_clock.now + 1.4))
        engine.tick(0.5)
        assert engine.time == pytest.approx(0.5)
        assert not engine.toggle_recording()

        keyframes = list(engine.store)
        assert [kf.variant for kf in keyframes] == [KeyPress("a")]
        assert keyframes[0].timestamp == pytest.approx(1.0)
        assert keyframes[0].duration == pytest.approx(0.4)
        assert engine.modified

    def test_stop_click_is_discarded(self, engine, host_clock):
        """The left click that pressed the stop button is not kept."""
        engine.toggle_recording()
        engine.capture_queue.put(CaptureEvent(EventKind.KEY_DOWN, "b", host_clock.now + 0.5))
        engine.capture_queue.put(CaptureEvent(EventKind.KEY_UP, "b", host_clock.now + 0.6))
        engine.capture_queue.put(CaptureEvent(EventKind.BUTTON_DOWN, "left", host_clock.now + 2.0))
        engine.tick(2.0)
        engine.toggle_recording()
        assert [kf.variant for kf in engine.store] == [KeyPress("b")]

    def test_recording_clears_and_can_be_undone(self, engine):
        original = engine.add_keyframe(Keyframe.key_press(3.0, "z"))
        engine.toggle_recording()
        assert len(engine.store) == 0
        engine.toggle_recording()
        assert engine.undo()
        assert original.id in engine.store

    def test_keeps_timeline_when_not_clearing(self, injector, logger, host_clock):
        engine = SequencerEngine(
            injector=injector, logger=logger, host_clock=host_clock, clear_before_recording=False
        )
        engine.add_keyframe(Keyframe.key_press(0.2, "z"))
        engine.toggle_recording()
        assert len(engine.store) == 1

    def test_add_pointer_keyframe_from_hotkey(self, engine):
        engine.capture_queue.put(CaptureEvent(EventKind.POINTER_MOVE, (5, 6), 0.0))
        engine.post(ControlCommand.ADD_MOVE_KEYFRAME)
        engine.tick(0.0)
        assert [kf.variant for kf in engine.store] == [MouseMove(5, 6)]


class TestEditing:
    """Tests for clipboard, undo and cleanup operations."""

    def test_paste_shifts_and_selects_copies(self, engine):
        original = engine.add_keyframe(Keyframe.key_press(1.0, "a", 0.2))
        assert engine.copy() == 1
        pasted = engine.paste()
        assert len(pasted) == 1
        assert pasted[0].id != original.id
        assert pasted[0].timestamp == pytest.approx(1.0 + PASTE_OFFSET)
        assert engine.store.selected_ids == [pasted[0].id]
        assert len(engine.store) == 2

    def test_cut_removes_selection(self, engine):
        engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        assert engine.cut() == 1
        assert len(engine.store) == 0
        assert len(engine.paste()) == 1

    def test_paste_with_empty_clipboard(self, engine):
        assert engine.paste() == []
        assert not engine.history.can_undo

    def test_delete_undo_redo(self, engine):
        keyframe = engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        assert engine.delete_selected() == 1
        assert engine.undo()
        assert keyframe.id in engine.store
        assert engine.redo()
        assert keyframe.id not in engine.store

    def test_enable_selected(self, engine):
        keyframe = engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        assert engine.enable_selected(False) == 1
        assert not engine.store.get(keyframe.id).enabled

    def test_cull_minor_moves(self, engine):
        """Only the last move of each uninterrupted run survives."""
        for t in (0.0, 0.1, 0.2):
            engine.store.add(Keyframe.mouse_move(t, int(t * 10), 0))
        engine.store.add(Keyframe.key_press(0.3, "a"))
        engine.store.add(Keyframe.mouse_move(0.4, 9, 9))
        assert engine.cull_minor_moves() == 2
        moves = [kf.variant for kf in engine.store.in_time_order() if isinstance(kf.variant, MouseMove)]
        assert moves == [MouseMove(2, 0), MouseMove(9, 9)]

    def test_zoom_and_scroll(self, engine):
        assert engine.zoom(1000) == 1.0
        assert engine.scroll(-10) == 0.0
        assert engine.scroll(80) > 0.0


class TestPersistence:
    """Tests for save, load and new."""

    def test_save_load_roundtrip(self, engine, injector, logger):
        keyframe = engine.add_keyframe(Keyframe.mouse_move(2.0, 7, 8))
        engine.repeats = 4
        document = engine.save()

        other = SequencerEngine(injector=injector, logger=logger)
        other.load(document)
        assert [kf.id for kf in other.store] == [keyframe.id]
        assert other.repeats == 4
        assert not other.modified
        assert not other.history.can_undo

    def test_malformed_load_leaves_session_untouched(self, engine):
        keyframe = engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        engine.speed = 1.5
        with pytest.raises(SnapshotError):
            engine.load({"keyframes": [{"id": "bad", "type": "key_press", "key": "a"}]})
        assert [kf.id for kf in engine.store] == [keyframe.id]
        assert engine.speed == 1.5

    def test_save_and_load_paths(self, engine, tmp_path):
        engine.add_keyframe(Keyframe.wait(0.0, 2.0))
        path = tmp_path / "wait.json"
        engine.save_to_path(path)
        assert not engine.modified

        engine.new()
        assert len(engine.store) == 0
        engine.load_from_path(path)
        assert engine.store.end_time() == pytest.approx(2.0)

    def test_new_resets_everything(self, engine):
        engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        engine.step_time()
        engine.new()
        assert len(engine.store) == 0
        assert engine.time == 0.0
        assert not engine.history.can_undo
        assert not engine.modified


class TestRecordingLock:
    """Timeline edits are refused while a recording is running."""

    def test_undo_keeps_recording_intact(self, engine, host_clock):
        engine.add_keyframe(Keyframe.key_press(0.0, "z", 0.5))
        engine.toggle_recording()
        engine.capture_queue.put(CaptureEvent(EventKind.KEY_DOWN, "a", host_clock.now + 1.0))
        engine.tick(1.2)
        assert not engine.undo()
        assert not engine.redo()
        engine.capture_queue.put(CaptureEvent(EventKind.KEY_UP, "a", host_clock.now + 1.4))
        engine.tick(0.5)
        engine.toggle_recording()
        keyframes = list(engine.store)
        assert [kf.variant for kf in keyframes] == [KeyPress("a")]
        assert keyframes[0].duration == pytest.approx(0.4)

    def test_clipboard_edits_are_refused(self, engine, logger):
        engine.toggle_recording()
        engine.store.add(Keyframe.key_press(0.1, "q"))
        engine.store.select_all()
        engine.clipboard = [Keyframe.key_press(0.0, "w")]
        assert engine.delete_selected() == 0
        assert engine.cut() == 0
        assert engine.paste() == []
        assert engine.enable_selected(False) == 0
        assert engine.cull_minor_moves() == 0
        assert engine.edit_selected(timestamp=2.0) is None
        assert len(engine.store) == 1
        assert any("while recording" in entry.message for entry in logger.get_all_logs("WARNING"))


class TestPropertyEdits:
    """Numeric edits of the primary selection."""

    def test_edit_timing_is_one_undo_step(self, engine):
        keyframe = engine.add_keyframe(Keyframe.key_press(1.0, "a", 0.2))
        engine.modified = False
        assert engine.edit_selected(timestamp=2.5, duration=0.75) is keyframe
        assert keyframe.timestamp == pytest.approx(2.5)
        assert keyframe.duration == pytest.approx(0.75)
        assert engine.modified
        assert engine.undo()
        restored = engine.store.get(keyframe.id)
        assert restored.timestamp == pytest.approx(1.0)
        assert restored.duration == pytest.approx(0.2)

    def test_values_are_clamped(self, engine):
        keyframe = engine.add_keyframe(Keyframe.key_press(1.0, "a", 0.2))
        engine.edit_selected(timestamp=-5.0, duration=500.0)
        assert keyframe.timestamp == 0.0
        assert keyframe.duration == pytest.approx(MAX_EDIT_DURATION)
        engine.edit_selected(timestamp=99999.0, duration=-1.0)
        assert keyframe.timestamp == pytest.approx(MAX_EDIT_TIMESTAMP)
        assert keyframe.duration == 0.0

    def test_change_mouse_button(self, engine):
        keyframe = engine.add_keyframe(Keyframe.mouse_button(1.0, "left", 0.1))
        engine.edit_selected(button="right")
        assert keyframe.variant == MouseButton("right")
        assert engine.undo()
        assert engine.store.get(keyframe.id).variant == MouseButton("left")

    def test_invalid_button_changes_nothing(self, engine):
        keyframe = engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        with pytest.raises(ValueError):
            engine.edit_selected(timestamp=3.0, button="left")
        assert keyframe.timestamp == pytest.approx(1.0)
        button = engine.add_keyframe(Keyframe.mouse_button(1.0, "left"))
        with pytest.raises(ValueError):
            engine.edit_selected(button="thumb")
        assert button.variant == MouseButton("left")

    def test_unchanged_values_record_nothing(self, engine):
        engine.add_keyframe(Keyframe.key_press(1.0, "a", 0.2))
        engine.history.clear()
        assert engine.edit_selected(timestamp=1.0) is None
        assert not engine.history.can_undo

    def test_no_selection(self, engine):
        engine.add_keyframe(Keyframe.key_press(1.0, "a"))
        engine.store.deselect()
        assert engine.selected_keyframe() is None
        assert engine.edit_selected(duration=1.0) is None
