"""Shared fixtures for the sequencer tests."""
import pytest

from logger import StatusLogger
from sequencer import SequencerEngine
from sequencer.injection import InjectionError


class FakeInjector:
    """Records every call instead of touching the real input devices."""

    def __init__(self, position=(0, 0), fail_on=None):
        self.calls = []
        self._position = position
        self._fail_on = fail_on

    def _record(self, name, *args):
        if name == self._fail_on:
            raise InjectionError(f"{name} refused")
        self.calls.append((name,) + args)

    def press_key(self, key):
        self._record("press_key", key)

    def release_key(self, key):
        self._record("release_key", key)

    def press_button(self, button):
        self._record("press_button", button)

    def release_button(self, button):
        self._record("release_button", button)

    def move_to(self, x, y):
        self._record("move_to", x, y)

    def scroll(self, dx, dy):
        self._record("scroll", dx, dy)

    def position(self):
        return self._position

    def names(self):
        return [call[0] for call in self.calls]


class FakeHostClock:
    """Manually driven replacement for time.monotonic."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def logger():
    return StatusLogger(min_level="DEBUG")


@pytest.fixture
def injector():
    return FakeInjector()


@pytest.fixture
def host_clock():
    return FakeHostClock(10.0)


@pytest.fixture
def engine(injector, logger, host_clock):
    return SequencerEngine(injector=injector, logger=logger, host_clock=host_clock)


@pytest.fixture
def injector_factory():
    return FakeInjector
