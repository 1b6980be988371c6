"""Platform-agnostic hotkey manager built on top of pynput."""

from __future__ import annotations

from typing import Callable, Dict, Optional

try:
    from pynput import keyboard  # type: ignore
except Exception as _e:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore

from logger import StatusLogger


class HotkeyManager:
    """Global record / stop / add-keyframe hotkeys across Windows, macOS, and Linux."""

    _SPECIAL_KEY_ALIASES: Dict[str, str] = {
        "ctrl": "ctrl",
        "control": "ctrl",
        "alt": "alt",
        "shift": "shift",
        "win": "cmd",
        "cmd": "cmd",
        "command": "cmd",
        "option": "alt",
        "super": "cmd",
        "esc": "esc",
        "escape": "esc",
        "enter": "enter",
        "return": "enter",
        "space": "space",
        "tab": "tab",
        "pause": "pause",
    }

    def __init__(
        self,
        record_hotkey: str = "F8",
        stop_hotkey: str = "Esc",
        add_keyframe_hotkey: str = "F9",
        logger: Optional[StatusLogger] = None,
    ) -> None:
        self._hotkeys: Dict[str, str] = {
            "record": record_hotkey,
            "stop": stop_hotkey,
            "add_keyframe": add_keyframe_hotkey,
        }
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._logger = logger or StatusLogger()
        self._listener: Optional[object] = None
        self._is_registered = False

    @property
    def is_registered(self) -> bool:
        return self._is_registered

    def register_record_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks["record"] = callback

    def register_stop_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks["stop"] = callback

    def register_add_keyframe_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks["add_keyframe"] = callback

    def build_hotkey_map(self) -> Dict[str, Callable[[], None]]:
        """pynput hotkey strings mapped to the registered callbacks."""
        hotkey_map: Dict[str, Callable[[], None]] = {}
        for action, callback in self._callbacks.items():
            hotkey = self._to_pynput_hotkey(self._hotkeys[action])
            hotkey_map[hotkey] = callback
        return hotkey_map

    def enable_hotkeys(self) -> bool:
        if self._is_registered:
            return True

        try:
            hotkey_map = self.build_hotkey_map()
        except ValueError as exc:
            self._logger.log_error(f"Invalid hotkey definition: {exc}")
            return False

        if not hotkey_map:
            return False

        if keyboard is None:
            self._logger.log_warning("pynput/keyboard backend not available; global hotkeys disabled")
            self._listener = None
            self._is_registered = False
            return False
        try:
            self._listener = keyboard.GlobalHotKeys(hotkey_map)
            self._listener.start()
            self._is_registered = True
            return True
        except Exception as exc:  # pragma: no cover - system specific
            self._logger.log_error(f"Failed to register hotkeys: {exc}")
            self._listener = None
            self._is_registered = False
            return False

    def disable_hotkeys(self) -> None:
        if not self._is_registered:
            return

        if self._listener is not None:
            try:
                self._listener.stop()  # type: ignore[attr-defined]
            except Exception as exc:  # pragma: no cover - system specific
                self._logger.log_debug(f"Hotkey listener stop failed: {exc}")
            self._listener = None

        self._is_registered = False

    def get_hotkey(self, action: str) -> str:
        return self._hotkeys[action]

    def update_hotkeys(self, record_hotkey: str, stop_hotkey: str, add_keyframe_hotkey: str) -> bool:
        was_registered = self._is_registered
        if was_registered:
            self.disable_hotkeys()

        self._hotkeys.update(record=record_hotkey, stop=stop_hotkey, add_keyframe=add_keyframe_hotkey)

        if was_registered:
            return self.enable_hotkeys()
        return True

    def _to_pynput_hotkey(self, hotkey: str) -> str:
        if not hotkey:
            raise ValueError("Empty hotkey string")

        tokens = [token.strip() for token in hotkey.replace("+", " ").split() if token.strip()]
        if not tokens:
            raise ValueError("Hotkey contains no tokens")

        parsed: list[str] = []
        for token in tokens:
            lower_token = token.lower()

            if lower_token in self._SPECIAL_KEY_ALIASES:
                parsed.append(f"<{self._SPECIAL_KEY_ALIASES[lower_token]}>")
                continue

            if lower_token.startswith("f") and lower_token[1:].isdigit():
                parsed.append(f"<{lower_token}>")
                continue

            if len(lower_token) == 1:
                parsed.append(lower_token)
                continue

            raise ValueError(f"Unknown key {token!r} in hotkey {hotkey!r}")

        return "+".join(parsed)
