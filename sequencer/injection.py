"""
Input injection: the replay boundary towards the operating system.

Notes
-----
- pynput controllers are preferred; pyautogui is the fallback when pynput
  is missing or refuses an event.
- Both libraries are imported lazily so the rest of the sequencer (and its
  tests) works on machines without a display.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from logger import StatusLogger


class InjectionError(Exception):
    pass


_PYAUTOGUI_KEY_NAMES = {
    "alt_l": "altleft",
    "alt_r": "altright",
    "alt_gr": "altright",
    "caps_lock": "capslock",
    "cmd": "win",
    "cmd_l": "winleft",
    "cmd_r": "winright",
    "ctrl_l": "ctrlleft",
    "ctrl_r": "ctrlright",
    "menu": "apps",
    "num_lock": "numlock",
    "page_down": "pagedown",
    "page_up": "pageup",
    "print_screen": "printscreen",
    "scroll_lock": "scrolllock",
    "shift_l": "shiftleft",
    "shift_r": "shiftright",
}


class InputInjector:
    """Presses, releases, moves and scrolls on behalf of the player."""

    def __init__(self, logger: Optional[StatusLogger] = None) -> None:
        self.logger = logger or StatusLogger()
        self._keyboard: Any = None
        self._mouse: Any = None

    # Keyboard ---------------------------------------------------------

    def press_key(self, key: str) -> None:
        self._key_event(key, pressed=True)

    def release_key(self, key: str) -> None:
        self._key_event(key, pressed=False)

    def _key_event(self, key: str, pressed: bool) -> None:
        kb_cls, key_mod = _get_pynput()
        if kb_cls is not None and key_mod is not None:
            try:
                if self._keyboard is None:
                    self._keyboard = kb_cls()
                target = key if len(key) == 1 else getattr(key_mod, key)
                if pressed:
                    self._keyboard.press(target)
                else:
                    self._keyboard.release(target)
                return
            except Exception as e:  # pragma: no cover - platform specific
                self.logger.log_debug(f"pynput key event failed, fallback to pyautogui: {e}")
        try:
            import pyautogui  # local import to avoid hard dep at import time
            name = _PYAUTOGUI_KEY_NAMES.get(key, key)
            if pressed:
                pyautogui.keyDown(name)
            else:
                pyautogui.keyUp(name)
        except Exception as e:  # pragma: no cover
            raise InjectionError(f"Failed to {'press' if pressed else 'release'} key {key!r}: {e}")

    # Mouse ------------------------------------------------------------

    def press_button(self, button: str) -> None:
        self._button_event(button, pressed=True)

    def release_button(self, button: str) -> None:
        self._button_event(button, pressed=False)

    def _button_event(self, button: str, pressed: bool) -> None:
        controller, btn_mod = self._mouse_controller()
        if controller is not None and btn_mod is not None:
            try:
                btn = getattr(btn_mod, button)
                if pressed:
                    controller.press(btn)
                else:
                    controller.release(btn)
                return
            except Exception as e:  # pragma: no cover
                self.logger.log_debug(f"pynput button event failed, fallback to pyautogui: {e}")
        try:
            import pyautogui  # local import
            if pressed:
                pyautogui.mouseDown(button=button)
            else:
                pyautogui.mouseUp(button=button)
        except Exception as e:  # pragma: no cover
            raise InjectionError(f"Failed to {'press' if pressed else 'release'} button {button!r}: {e}")

    def move_to(self, x: int, y: int) -> None:
        controller, _btn_mod = self._mouse_controller()
        if controller is not None:
            try:
                controller.position = (int(x), int(y))
                return
            except Exception as e:  # pragma: no cover
                self.logger.log_debug(f"pynput move failed, fallback to pyautogui: {e}")
        try:
            import pyautogui  # local import
            pyautogui.moveTo(int(x), int(y))
        except Exception as e:  # pragma: no cover
            raise InjectionError(f"Failed to move pointer to ({x}, {y}): {e}")

    def scroll(self, dx: int, dy: int) -> None:
        controller, _btn_mod = self._mouse_controller()
        if controller is not None:
            try:
                controller.scroll(int(dx), int(dy))
                return
            except Exception as e:  # pragma: no cover
                self.logger.log_debug(f"pynput scroll failed, fallback to pyautogui: {e}")
        try:
            import pyautogui  # local import
            if dx:
                pyautogui.hscroll(int(dx))
            if dy:
                pyautogui.scroll(int(dy))
        except Exception as e:  # pragma: no cover
            raise InjectionError(f"Failed to scroll by ({dx}, {dy}): {e}")

    def position(self) -> Tuple[int, int]:
        controller, _btn_mod = self._mouse_controller()
        if controller is not None:
            try:
                x, y = controller.position
                return int(x), int(y)
            except Exception as e:  # pragma: no cover
                self.logger.log_debug(f"pynput position failed, fallback to pyautogui: {e}")
        try:
            import pyautogui  # local import
            x, y = pyautogui.position()
            return int(x), int(y)
        except Exception as e:  # pragma: no cover
            raise InjectionError(f"Failed to read pointer position: {e}")

    def _mouse_controller(self) -> Tuple[Optional[Any], Optional[Any]]:
        m_ctrl_cls, m_btn_mod = _get_pynput_mouse()
        if m_ctrl_cls is None:
            return None, None
        if self._mouse is None:
            self._mouse = m_ctrl_cls()
        return self._mouse, m_btn_mod


def _get_pynput() -> Tuple[Optional[Any], Optional[Any]]:
    """Import pynput lazily and return (KeyboardControllerClass, KeyModule)."""
    try:
        from pynput.keyboard import Controller as KeyboardController, Key as KeyModule  # type: ignore
        return KeyboardController, KeyModule
    except Exception:
        return None, None


def _get_pynput_mouse() -> Tuple[Optional[Any], Optional[Any]]:
    """Import pynput.mouse lazily and return (MouseControllerClass, ButtonModule)."""
    try:
        from pynput.mouse import Controller as MouseController, Button as MouseButton  # type: ignore
        return MouseController, MouseButton
    except Exception:
        return None, None
