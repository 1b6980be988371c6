"""
Tests for the timeline coordinate mapping.
"""
import pytest

from sequencer.keyframe import Lane
from sequencer.transform import (
    DEFAULT_SCALE,
    LEFT_MARGIN,
    MAX_SCALE,
    MIN_RECT_WIDTH,
    MIN_SCALE,
    Rect,
    Viewport,
    offset_to_time,
    pitch,
    tick_times,
    time_to_offset,
    time_to_rect,
    zoom,
)


class TestTimeOffsetMapping:
    """Tests for time <-> pixel conversion."""

    def test_pitch_follows_scale(self):
        """Pixels per second grow linearly with the zoom scale."""
        assert pitch(0.0) == pytest.approx(20.0)
        assert pitch(DEFAULT_SCALE) == pytest.approx(40.0)
        assert pitch(1.0) == pytest.approx(60.0)

    @pytest.mark.parametrize("scale", [MIN_SCALE, 0.25, DEFAULT_SCALE, MAX_SCALE])
    @pytest.mark.parametrize("width", [0.0, 320.0, 1280.0])
    def test_offset_roundtrip(self, scale, width):
        """Converting to pixels and back returns the same time."""
        for t in (0.0, 0.5, 3.25, 120.0, 1234.5678, 9999.999):
            offset = time_to_offset(t, scale, width)
            assert offset_to_time(offset, scale, width) == pytest.approx(t)

    def test_view_width_does_not_change_pitch(self):
        """Column pitch is independent of the visible width."""
        assert time_to_offset(2.0, 0.5, 400.0) == pytest.approx(time_to_offset(2.0, 0.5, 1600.0))

    def test_tick_times_are_whole_seconds(self):
        """Ticks start at the first whole second after the scroll offset."""
        ticks = tick_times(200.0, DEFAULT_SCALE, scroll=1.5)
        assert ticks[0] == 2.0
        assert all(t == int(t) for t in ticks)
        assert ticks[-1] <= 1.5 + 200.0 / 40.0

    def test_zoom_is_clamped(self):
        """Zooming never leaves the allowed scale range."""
        assert zoom(MAX_SCALE, 50) == MAX_SCALE
        assert zoom(MIN_SCALE, -50) == MIN_SCALE


class TestTimeToRect:
    """Tests for keyframe rectangle computation."""

    def test_zero_duration_keeps_minimum_width(self):
        """Zero-length keyframes are still clickable."""
        rect = time_to_rect(1.0, 0.0, DEFAULT_SCALE, 800.0)
        assert rect is not None
        assert rect.width == pytest.approx(MIN_RECT_WIDTH)

    def test_position_includes_left_margin(self):
        """The first pixel of a keyframe sits after the margin."""
        rect = time_to_rect(1.0, 1.0, DEFAULT_SCALE, 800.0)
        assert rect.x0 == pytest.approx(40.0 + LEFT_MARGIN)
        assert rect.x1 == pytest.approx(80.0 + LEFT_MARGIN)

    def test_clipped_to_visible_width(self):
        """A keyframe running off the right side is clipped."""
        rect = time_to_rect(1.0, 100.0, DEFAULT_SCALE, 200.0)
        assert rect.x1 == pytest.approx(199.0)

    def test_outside_view_returns_none(self):
        """Keyframes beyond the view are not drawn."""
        assert time_to_rect(50.0, 1.0, DEFAULT_SCALE, 200.0) is None

    def test_scroll_offset_shifts_left(self):
        """Scrolled-away keyframes fall off the left side."""
        assert time_to_rect(1.0, 0.5, DEFAULT_SCALE, 200.0, scroll_offset=5.0) is None


class TestViewport:
    """Tests for the viewport helper."""

    def test_x_and_time_are_inverse(self):
        """x_for_time and time_for_x undo each other, including scroll."""
        viewport = Viewport(left=10.0, width=600.0, scale=0.3, scroll=2.0)
        for t in (2.0, 3.5, 9.0):
            assert viewport.time_for_x(viewport.x_for_time(t)) == pytest.approx(t)

    def test_lane_rows(self):
        """Keyboard lane sits above the pointer lane."""
        viewport = Viewport()
        assert viewport.lane_top(Lane.KEYBOARD) < viewport.lane_top(Lane.POINTER)
        assert viewport.lane_at(5.0) is Lane.KEYBOARD
        assert viewport.lane_at(30.0) is Lane.POINTER
        assert viewport.lane_at(500.0) is None

    def test_rect_intersection(self):
        """Rectangles given in any corner order still intersect."""
        assert Rect(10, 10, 0, 0).intersects(Rect(5, 5, 20, 20))
        assert not Rect(0, 0, 4, 4).intersects(Rect(5, 5, 6, 6))
