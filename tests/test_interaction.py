"""
Tests for pointer gestures on the timeline canvas.

With the default viewport (scale 0.5, 40 px per second, 4 px margin) a
keyboard keyframe at t=1.0 with duration 1.0 spans x 44..84, y 3..21.
"""
import random

import pytest

from sequencer.history import EditHistory
from sequencer.interaction import (
    CursorHint,
    Edge,
    InteractionMode,
    TimelineInteraction,
    drag_keyframes,
    resize_keyframe,
)
from sequencer.keyframe import Keyframe
from sequencer.store import TimelineStore
from sequencer.transform import Viewport


@pytest.fixture
def keyframe():
    return Keyframe.key_press(1.0, "a", 1.0)


@pytest.fixture
def interaction(keyframe):
    store = TimelineStore([keyframe])
    return TimelineInteraction(store, history=EditHistory())


class TestPureHelpers:
    """Tests for drag and resize arithmetic."""

    def test_drag_clamps_group_at_zero(self):
        """The earliest keyframe stops at zero and the group keeps its spacing."""
        a = Keyframe.key_press(0.5, "a")
        b = Keyframe.key_press(2.0, "b")
        applied = drag_keyframes([a, b], -3.0)
        assert applied == pytest.approx(-0.5)
        assert a.timestamp == 0.0
        assert b.timestamp == pytest.approx(1.5)

    def test_resize_left_keeps_end(self):
        """Moving the left edge right shortens the keyframe."""
        keyframe = Keyframe.key_press(2.0, "a", 1.0)
        resize_keyframe(keyframe, Edge.LEFT, 0.3)
        assert keyframe.timestamp == pytest.approx(2.3)
        assert keyframe.duration == pytest.approx(0.7)

    def test_resize_left_cannot_pass_end(self):
        """The left edge stops at the end, leaving zero duration."""
        keyframe = Keyframe.key_press(2.0, "a", 1.0)
        resize_keyframe(keyframe, Edge.LEFT, 5.0)
        assert keyframe.timestamp == pytest.approx(3.0)
        assert keyframe.duration == 0.0

    def test_resize_right_clamps_duration(self):
        """Durations never become negative."""
        keyframe = Keyframe.key_press(2.0, "a", 1.0)
        applied = resize_keyframe(keyframe, Edge.RIGHT, -4.0)
        assert keyframe.duration == 0.0
        assert applied == pytest.approx(-1.0)


class TestHitTest:
    """Tests for hit testing and cursor hints."""

    def test_edges_take_precedence(self, interaction, keyframe):
        """Pointer near a border hits the edge, inside hits the body."""
        assert interaction.hit_test(44, 10).edge is Edge.LEFT
        assert interaction.hit_test(84, 10).edge is Edge.RIGHT
        hit = interaction.hit_test(60, 10)
        assert hit.keyframe_id == keyframe.id
        assert hit.edge is None

    def test_zero_length_keyframe_has_a_body(self):
        """The middle of a minimum-width rectangle drags, its borders resize."""
        keyframe = Keyframe.key_press(1.0, "a", 0.0)
        interaction = TimelineInteraction(TimelineStore([keyframe]))
        assert interaction.hit_test(45.5, 10).edge is None
        assert interaction.hit_test(44, 10).edge is Edge.LEFT
        assert interaction.hit_test(47, 10).edge is Edge.RIGHT

    @pytest.mark.parametrize("duration", [0.0, 0.05, 0.12, 0.2])
    def test_short_keyframe_centre_is_body(self, duration):
        keyframe = Keyframe.key_press(1.0, "a", duration)
        interaction = TimelineInteraction(TimelineStore([keyframe]))
        rect = interaction.keyframe_rect(keyframe)
        hit = interaction.hit_test((rect.x0 + rect.x1) / 2, 10)
        assert hit.keyframe_id == keyframe.id
        assert hit.edge is None

    def test_miss(self, interaction):
        """Empty space and the other lane do not hit."""
        assert interaction.hit_test(300, 10) is None
        assert interaction.hit_test(60, 35) is None

    def test_hover_hints(self, interaction):
        """Hover reports the cursor for each zone."""
        assert interaction.hover(60, 10) is CursorHint.POINTING_HAND
        assert interaction.hover(84, 10) is CursorHint.RESIZE_HORIZONTAL
        assert interaction.hover(300, 10) is CursorHint.DEFAULT


class TestGestures:
    """Tests for press / move / release sequences."""

    def test_drag_is_incremental(self, interaction, keyframe):
        """Each move applies only the delta since the previous move."""
        interaction.pointer_press(60, 10)
        interaction.pointer_move(100, 10)
        assert interaction.mode is InteractionMode.DRAGGING
        assert keyframe.timestamp == pytest.approx(2.0)
        interaction.pointer_move(80, 10)
        assert keyframe.timestamp == pytest.approx(1.5)
        interaction.pointer_release(80, 10)
        assert interaction.mode is InteractionMode.IDLE

    def test_drag_anchor_follows_pointer_when_clamped(self):
        """After clamping at zero, moving back starts from the clamped spot."""
        keyframe = Keyframe.key_press(0.5, "a", 1.0)
        interaction = TimelineInteraction(TimelineStore([keyframe]))
        interaction.pointer_press(40, 10)
        interaction.pointer_move(0, 10)
        assert keyframe.timestamp == 0.0
        interaction.pointer_move(40, 10)
        assert keyframe.timestamp == pytest.approx(1.0)

    def test_resize_from_right_edge(self, interaction, keyframe):
        """Dragging the right edge changes only the duration."""
        assert interaction.pointer_press(84, 10) is InteractionMode.RESIZING
        interaction.pointer_move(104, 10)
        assert keyframe.timestamp == pytest.approx(1.0)
        assert keyframe.duration == pytest.approx(1.5)

    def test_drag_commits_one_undo_step(self, interaction, keyframe):
        """A whole drag is undone in one step."""
        interaction.pointer_press(60, 10)
        interaction.pointer_move(80, 10)
        interaction.pointer_move(100, 10)
        interaction.pointer_release(100, 10)
        assert interaction.history.undo(interaction.store)
        assert interaction.store.get(keyframe.id).timestamp == pytest.approx(1.0)
        assert not interaction.history.can_undo

    def test_click_without_move_records_nothing(self, interaction, keyframe):
        """A plain click selects without creating an undo step."""
        interaction.pointer_press(60, 10)
        interaction.pointer_release(60, 10)
        assert interaction.store.selected_ids == [keyframe.id]
        assert not interaction.history.can_undo

    def test_press_on_empty_space_deselects(self, interaction, keyframe):
        """Clicking nothing clears the selection."""
        interaction.store.select(keyframe.id)
        interaction.pointer_press(300, 10)
        interaction.pointer_release(300, 10)
        assert interaction.store.selected_ids == []

    def test_box_select(self, interaction, keyframe):
        """Dragging on empty space selects every keyframe the box touches."""
        other = interaction.store.add(Keyframe.mouse_move(5.0, 1, 1))
        interaction.pointer_press(30, 0)
        interaction.pointer_move(100, 30)
        assert interaction.selection_rect is not None
        assert interaction.store.selected_ids == [keyframe.id]
        assert not interaction.store.is_selected(other.id)
        interaction.pointer_release(100, 30)
        assert interaction.selection_rect is None

    def test_additive_press_toggles(self, interaction, keyframe):
        """Ctrl-clicking a selected keyframe removes it from the selection."""
        interaction.store.select(keyframe.id)
        interaction.pointer_press(60, 10, additive=True)
        assert not interaction.store.is_selected(keyframe.id)
        assert interaction.mode is InteractionMode.IDLE

    def test_group_drag(self, interaction, keyframe):
        """All selected keyframes move together."""
        other = interaction.store.add(Keyframe.key_press(3.0, "b", 0.5))
        interaction.store.select_all()
        interaction.pointer_press(60, 10)
        interaction.pointer_move(80, 10)
        assert keyframe.timestamp == pytest.approx(1.5)
        assert other.timestamp == pytest.approx(3.5)

    def test_drag_default_mouse_move(self):
        """Short pointer keyframes move instead of resizing."""
        keyframe = Keyframe.mouse_move(1.0, 10, 10)
        interaction = TimelineInteraction(TimelineStore([keyframe]))
        rect = interaction.keyframe_rect(keyframe)
        centre = (rect.x0 + rect.x1) / 2
        interaction.pointer_press(centre, 35)
        interaction.pointer_move(centre + 40, 35)
        assert interaction.mode is InteractionMode.DRAGGING
        interaction.pointer_release(centre + 40, 35)
        assert keyframe.timestamp == pytest.approx(2.0)
        assert keyframe.duration == pytest.approx(0.1)


class TestGestureProperties:
    """Properties that must hold for any sequence of pointer moves."""

    @pytest.mark.parametrize("scale", [0.01, 0.5, 1.0])
    @pytest.mark.parametrize("deltas", [(5, 7, 11), (30, -12, 4), (-3, -3, 20), (0.5, 0.25, 0.125)])
    def test_three_moves_equal_one(self, scale, deltas):
        """Three small moves land where one combined move does."""
        results = []
        for steps in (deltas, (sum(deltas),)):
            keyframe = Keyframe.key_press(5.0, "a", 2.0)
            interaction = TimelineInteraction(TimelineStore([keyframe]))
            interaction.viewport = Viewport(scale=scale)
            rect = interaction.keyframe_rect(keyframe)
            x = (rect.x0 + rect.x1) / 2
            interaction.pointer_press(x, 10)
            for step in steps:
                x += step
                interaction.pointer_move(x, 10)
            interaction.pointer_release(x, 10)
            results.append(keyframe.timestamp)
        assert results[0] == pytest.approx(results[1])

    @pytest.mark.parametrize("seed", range(5))
    def test_edits_never_go_negative(self, seed):
        """Mixed drags and resizes keep every timestamp and duration non-negative."""
        rng = random.Random(seed)
        keyframes = [Keyframe.key_press(rng.uniform(0.0, 3.0), "a", rng.uniform(0.0, 1.0)) for _ in range(4)]
        for _ in range(200):
            group = rng.sample(keyframes, rng.randint(1, len(keyframes)))
            delta = rng.uniform(-4.0, 4.0)
            action = rng.choice(("drag", "left", "right"))
            if action == "drag":
                drag_keyframes(group, delta)
            else:
                resize_keyframe(group[0], Edge.LEFT if action == "left" else Edge.RIGHT, delta)
            for keyframe in keyframes:
                assert keyframe.timestamp >= 0.0
                assert keyframe.duration >= 0.0
