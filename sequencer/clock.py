"""Playback clock driven by wall-clock deltas from the host frame loop."""

from __future__ import annotations

from datetime import timedelta
from typing import Union


STEP_INCREMENT = 0.1

WallDelta = Union[float, timedelta]


def _seconds(wall_delta: WallDelta) -> float:
    if isinstance(wall_delta, timedelta):
        return wall_delta.total_seconds()
    return float(wall_delta)


class PlaybackClock:
    """
    Owns the playback cursor: current time, play flag and rate.

    The clock never sleeps. The host calls :meth:`tick` once per frame with
    the wall time elapsed since the previous frame, so pausing or stopping
    takes effect on the next frame.
    """

    def __init__(self, rate: float = 1.0) -> None:
        self._time = 0.0
        self._playing = False
        self._rate = 1.0
        self.rate = rate

    @property
    def time(self) -> float:
        return self._time

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def rate(self) -> float:
        return self._rate

    @rate.setter
    def rate(self, value: float) -> None:
        if value <= 0:
            raise ValueError("Playback rate must be positive")
        self._rate = float(value)

    def tick(self, wall_delta: WallDelta) -> None:
        """Advance by ``wall_delta * rate`` while playing."""
        if self._playing:
            self.advance(wall_delta)

    def advance(self, wall_delta: WallDelta) -> None:
        """Advance regardless of the play flag (used while recording)."""
        delta = _seconds(wall_delta)
        if delta > 0:
            self._time += delta * self._rate

    def toggle_play(self) -> bool:
        self._playing = not self._playing
        return self._playing

    def play(self) -> None:
        self._playing = True

    def pause(self) -> None:
        self._playing = False

    def reset(self) -> None:
        self._time = 0.0

    def step(self) -> None:
        self._time += STEP_INCREMENT

    def seek(self, t: float) -> None:
        self._time = max(0.0, float(t))
