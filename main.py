"""
Main entry point for the Automate sequencer.

Keeps the main file minimal: set up the platform, build the window, hand
control to the Tk main loop.
"""

import sys
import tkinter as tk
from gui import SequencerGUI


def _enable_high_dpi_awareness() -> None:
    if not sys.platform.startswith("win"):
        return

    try:
        import ctypes

        try:
            ctypes.windll.shcore.SetProcessDpiAwareness(2)
            return
        except AttributeError:
            pass

        try:
            ctypes.windll.user32.SetProcessDPIAware()
        except AttributeError:
            pass
    except OSError:
        # Tk falls back to default scaling.
        pass


def main() -> None:
    """Application entry point."""
    _enable_high_dpi_awareness()
    root = tk.Tk()
    SequencerGUI(root)
    root.mainloop()


if __name__ == "__main__":
    main()
