"""Global keyboard and mouse capture feeding the sequencer's capture queue."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

try:
    from pynput import keyboard, mouse  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore
    mouse = None  # type: ignore

from logger import StatusLogger
from sequencer.events import CaptureEvent, CaptureQueue, EventKind


class CaptureError(Exception):
    """Raised when the OS input listeners cannot be started."""


# Windows OEM virtual-key codes for the US layout punctuation keys.
_OEM_VK_CHARS = {
    0xBA: ";", 0xBB: "=", 0xBC: ",", 0xBD: "-", 0xBE: ".", 0xBF: "/",
    0xC0: "`", 0xDB: "[", 0xDC: "\\", 0xDD: "]", 0xDE: "'",
}


def _is_control_char(char: str) -> bool:
    return len(char) == 1 and (ord(char) < 32 or ord(char) == 127)


def vk_name(vk: Optional[int]) -> Optional[str]:
    """Base key for a virtual-key code, used when the character is unusable."""
    if vk is None:
        return None
    if 0x30 <= vk <= 0x39 or 0x41 <= vk <= 0x5A:
        return chr(vk).lower()
    if 0x61 <= vk <= 0x7A:
        return chr(vk)
    return _OEM_VK_CHARS.get(vk)


def key_name(key: Any) -> Optional[str]:
    """
    Name used on the timeline for a pynput key.

    ``Key.f8`` -> ``"f8"``, ``KeyCode('A')`` -> ``"a"``. With Ctrl held
    pynput reports control characters (Ctrl+C gives ``'\\x03'``); those fall
    back to the virtual-key code so the recording keeps ``"c"``.
    """
    char = getattr(key, "char", None)
    if char and not _is_control_char(char):
        return char.lower()
    name = getattr(key, "name", None)
    if name:
        return name
    return vk_name(getattr(key, "vk", None))


def button_name(button: Any) -> str:
    return getattr(button, "name", str(button))


class InputCaptureService:
    """Listens to all keyboard and mouse input and queues it for the engine thread."""

    def __init__(
        self,
        capture_queue: CaptureQueue,
        logger: Optional[StatusLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._queue = capture_queue
        self._logger = logger or StatusLogger()
        self._clock = clock
        self._lock = threading.Lock()
        self._keyboard_listener: Optional[object] = None
        self._mouse_listener: Optional[object] = None

    @property
    def running(self) -> bool:
        return self._keyboard_listener is not None

    def start(self) -> None:
        """Start both listeners; raises CaptureError if the backend is unavailable."""
        with self._lock:
            if self._keyboard_listener is not None:
                return
            if keyboard is None or mouse is None:
                raise CaptureError("pynput backend not available; input capture is disabled")
            try:
                self._keyboard_listener = keyboard.Listener(
                    on_press=self.on_key_press, on_release=self.on_key_release
                )
                self._mouse_listener = mouse.Listener(
                    on_move=self.on_move, on_click=self.on_click, on_scroll=self.on_scroll
                )
                self._keyboard_listener.start()
                self._mouse_listener.start()
            except Exception as exc:  # pragma: no cover - system specific
                self._stop_listeners()
                raise CaptureError(f"Failed to start input listeners: {exc}") from exc
        self._logger.log_debug("Input capture started")

    def stop(self) -> None:
        with self._lock:
            self._stop_listeners()

    # Listener callbacks (run on pynput threads) -----------------------

    def on_key_press(self, key: Any) -> None:
        self._put(EventKind.KEY_DOWN, key_name(key) or str(key))

    def on_key_release(self, key: Any) -> None:
        self._put(EventKind.KEY_UP, key_name(key) or str(key))

    def on_move(self, x: float, y: float) -> None:
        self._put(EventKind.POINTER_MOVE, (int(x), int(y)))

    def on_click(self, _x: float, _y: float, button: Any, pressed: bool) -> None:
        kind = EventKind.BUTTON_DOWN if pressed else EventKind.BUTTON_UP
        self._put(kind, button_name(button))

    def on_scroll(self, _x: float, _y: float, dx: int, dy: int) -> None:
        self._put(EventKind.SCROLL, (int(dx), int(dy)))

    # Internal helpers -------------------------------------------------

    def _put(self, kind: EventKind, payload: Any) -> None:
        self._queue.put(CaptureEvent(kind, payload, self._clock()))

    def _stop_listeners(self) -> None:
        for listener in (self._keyboard_listener, self._mouse_listener):
            if listener is not None:
                try:
                    listener.stop()  # type: ignore[attr-defined]
                except Exception as exc:  # pragma: no cover - system specific
                    self._logger.log_debug(f"Listener stop failed: {exc}")
        self._keyboard_listener = None
        self._mouse_listener = None
