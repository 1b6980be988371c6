"""
Status Logger - keeps a bounded history of engine messages.

The sequencer engine, recorder and player all report through one shared
StatusLogger; the GUI subscribes to it to mirror messages in its status bar.
"""

from datetime import datetime
from typing import Callable, List, Optional
from dataclasses import dataclass


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class LogEntry:
    """A single log line."""
    timestamp: datetime
    message: str
    level: str = "INFO"

    def __str__(self) -> str:
        time_str = self.timestamp.strftime("%H:%M:%S")
        return f"[{time_str}] {self.level}: {self.message}"


LogListener = Callable[[LogEntry], None]


class StatusLogger:
    """
    Manages status updates and maintains a log history.

    Entries below ``min_level`` are discarded, so debug chatter from the
    capture pipeline costs nothing unless asked for.
    """

    def __init__(self, max_entries: int = 500, min_level: str = "INFO"):
        """
        Args:
            max_entries: Maximum number of log entries to keep in memory
            min_level: Lowest level that is recorded
        """
        self._log_entries: List[LogEntry] = []
        self._max_entries = max_entries
        self._min_rank = LEVELS.index(min_level)
        self._current_status = "Ready"
        self._listeners: List[LogListener] = []

    def log_debug(self, message: str) -> None:
        self._add_entry(message, "DEBUG")

    def log_info(self, message: str) -> None:
        self._add_entry(message, "INFO")

    def log_warning(self, message: str) -> None:
        self._add_entry(message, "WARNING")

    def log_error(self, message: str) -> None:
        self._add_entry(message, "ERROR")

    def update_status(self, status: str) -> None:
        self._current_status = status
        self.log_info(status)

    def get_current_status(self) -> str:
        return self._current_status

    def subscribe(self, listener: LogListener) -> None:
        """Call ``listener`` for every recorded entry."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: LogListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def get_recent_logs(self, count: int = 10) -> List[LogEntry]:
        return self._log_entries[-count:]

    def get_all_logs(self, level: Optional[str] = None) -> List[LogEntry]:
        """All entries, optionally only those of one level."""
        if level is None:
            return self._log_entries.copy()
        return [entry for entry in self._log_entries if entry.level == level]

    def clear_logs(self) -> None:
        self._log_entries.clear()

    def _add_entry(self, message: str, level: str) -> None:
        if LEVELS.index(level) < self._min_rank:
            return

        entry = LogEntry(timestamp=datetime.now(), message=message, level=level)
        self._log_entries.append(entry)

        if len(self._log_entries) > self._max_entries:
            self._log_entries = self._log_entries[-self._max_entries:]

        for listener in list(self._listeners):
            listener(entry)

    def export_logs_to_file(self, filepath: str) -> bool:
        """
        Export all logs to a text file.

        Returns:
            bool: True if export was successful
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write("Automate - Log Export\n")
                f.write(f"Generated: {datetime.now()}\n")
                f.write("=" * 50 + "\n\n")

                for entry in self._log_entries:
                    time_str = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S")
                    f.write(f"[{time_str}] {entry.level}: {entry.message}\n")

            return True
        except OSError as e:
            self.log_error(f"Failed to export logs: {e}")
            return False
