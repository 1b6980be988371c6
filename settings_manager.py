"""Persistence of Automate preferences between sessions."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from logger import StatusLogger
from models import ApplicationSettings


SETTINGS_ENV_VAR = "AUTOMATE_SETTINGS"


def default_storage_path() -> Path:
    """``$AUTOMATE_SETTINGS`` if set, else ``~/.automate/settings.json``."""
    override = os.environ.get(SETTINGS_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".automate" / "settings.json"


class SettingsManager:
    """Reads and writes ApplicationSettings as a JSON file."""

    def __init__(self, storage_path: Optional[Path] = None, logger: Optional[StatusLogger] = None) -> None:
        self._storage_path = Path(storage_path) if storage_path else default_storage_path()
        self._logger = logger or StatusLogger()

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def load(self) -> ApplicationSettings:
        """Settings from disk; defaults when the file is missing or unusable."""
        path = self.storage_path
        if not path.exists():
            return ApplicationSettings()

        try:
            raw_data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw_data, dict):
                raise ValueError("settings root must be an object")
            return ApplicationSettings.from_dict(raw_data)
        except (OSError, ValueError, TypeError) as exc:
            backup_path = path.with_suffix(".bak")
            self._logger.log_warning(f"Ignoring unusable settings file {path} ({exc}); moved to {backup_path.name}")
            try:
                path.replace(backup_path)
            except OSError as move_exc:
                self._logger.log_debug(f"Could not back up settings file: {move_exc}")
            return ApplicationSettings()

    def save(self, settings: ApplicationSettings) -> None:
        """Write through a temporary file so a crash never leaves half a file."""
        path = self.storage_path
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(settings.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)
