"""
Graphical user interface for Automate.

Key capabilities
----------------
- Record global keyboard and mouse input onto a two-lane timeline
- Edit keyframes on a canvas: select, box select, drag, resize, clipboard, undo
- Replay the timeline with adjustable speed and repeat count
- Save and open sequences as JSON documents
- Persist user preferences (hotkeys, zoom, speed, failsafe edge, etc.)
"""

from __future__ import annotations

import os
import queue
import shutil
import sys
import time
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, scrolledtext, ttk
from typing import Dict, List, Optional, Tuple

import pyautogui

from hotkey_manager import HotkeyManager
from input_capture import CaptureError, InputCaptureService
from logger import LogEntry, StatusLogger
from models import ApplicationSettings, MonitorEdge
from sequencer import (
    CaptureQueue,
    ControlCommand,
    EngineState,
    InputInjector,
    Keyframe,
    Lane,
    SequencerEngine,
    SnapshotError,
)
from sequencer.engine import MAX_EDIT_DURATION, MAX_EDIT_TIMESTAMP
from sequencer.interaction import CursorHint, InteractionMode
from sequencer.keyframe import BUTTONS, KeyPress, MouseButton, MouseMove, Scroll, Wait
from sequencer.transform import LANE_ROWS, ROW_HEIGHT, tick_times
from settings_manager import SettingsManager


def describe_keyframe(keyframe: Keyframe) -> Tuple[str, str]:
    """Heading and detail line for the selected-keyframe panel."""
    variant = keyframe.variant
    if isinstance(variant, KeyPress):
        return "Keyboard button press", f"key: {variant.key}"
    if isinstance(variant, MouseButton):
        return "Mouse button press", f"button: {variant.button}"
    if isinstance(variant, MouseMove):
        return "Mouse move", f"position: ({variant.x}, {variant.y})"
    if isinstance(variant, Scroll):
        return "Scroll", f"delta: ({variant.dx}, {variant.dy})"
    if isinstance(variant, Wait):
        return "Wait", f"{variant.seconds:g} s"
    return type(variant).__name__, ""


class SequencerGUI:
    """Tkinter based GUI that drives the sequencer engine from its frame loop."""

    FRAME_MS = 16
    RULER_HEIGHT = 20
    DEFAULT_WINDOW_SIZE = (1100, 420)
    MIN_WINDOW_SIZE = (720, 320)
    FILE_TYPES = [("Sequences", "*.json"), ("All files", "*.*")]

    _LANE_COLORS: Dict[Lane, str] = {
        Lane.KEYBOARD: "#3b82f6",
        Lane.POINTER: "#10b981",
    }
    _CURSORS: Dict[CursorHint, str] = {
        CursorHint.DEFAULT: "",
        CursorHint.POINTING_HAND: "hand2",
        CursorHint.RESIZE_HORIZONTAL: "sb_h_double_arrow",
    }

    def __init__(self, root: tk.Tk):
        self.root = root
        self.root.title("Automate")
        self._configure_window_geometry()

        self.logger = StatusLogger()
        self.settings_manager = SettingsManager(logger=self.logger)
        self.settings: ApplicationSettings = self.settings_manager.load()

        self.style = ttk.Style()
        self._configure_styles()

        # Runtime state --------------------------------------------------
        self._log_queue: "queue.Queue[LogEntry]" = queue.Queue()
        self.logger.subscribe(self._log_queue.put)

        self.capture_queue = CaptureQueue()
        self.capture_service = InputCaptureService(self.capture_queue, self.logger)
        self.engine = SequencerEngine(
            injector=InputInjector(self.logger),
            logger=self.logger,
            capture_queue=self.capture_queue,
            move_resolution=self.settings.mouse_move_resolution,
            ignored_keys=tuple(self.settings.hotkey_names()),
            clear_before_recording=self.settings.clear_before_recording,
            failsafe=self._failsafe_crossed,
            scale=self.settings.timeline_scale,
            speed=self.settings.playback_speed,
            repeats=self.settings.repeats,
        )
        self.hotkey_manager = HotkeyManager(
            record_hotkey=self.settings.record_hotkey,
            stop_hotkey=self.settings.stop_hotkey,
            add_keyframe_hotkey=self.settings.add_keyframe_hotkey,
            logger=self.logger,
        )

        self.current_path: Optional[Path] = None
        self._persist_suspended = True
        self._frame_job: Optional[str] = None
        self._last_frame = time.perf_counter()
        self._screen_size: Optional[Tuple[int, int]] = None

        # Tk variables ---------------------------------------------------
        self.status_var = tk.StringVar(value="Status: Ready")
        self.time_var = tk.StringVar(value="0.000 s")
        self.speed_var = tk.DoubleVar(value=self.settings.playback_speed)
        self.repeats_var = tk.IntVar(value=self.settings.repeats)
        self.clear_before_var = tk.BooleanVar(value=self.settings.clear_before_recording)
        self.failsafe_var = tk.StringVar(value=self.settings.failsafe_edge.value)
        self.record_hotkey_var = tk.StringVar(value=self.settings.record_hotkey)
        self.stop_hotkey_var = tk.StringVar(value=self.settings.stop_hotkey)
        self.add_hotkey_var = tk.StringVar(value=self.settings.add_keyframe_hotkey)
        self.selection_title_var = tk.StringVar(value="Nothing selected")
        self.selection_detail_var = tk.StringVar(value="")
        self.selection_id_var = tk.StringVar(value="")
        self.edit_timestamp_var = tk.StringVar(value="")
        self.edit_duration_var = tk.StringVar(value="")
        self.edit_button_var = tk.StringVar(value="")
        self._shown_selection: Optional[Tuple] = None

        self.speed_var.trace_add("write", lambda *_: self._on_playback_options_changed())
        self.repeats_var.trace_add("write", lambda *_: self._on_playback_options_changed())

        # UI --------------------------------------------------------------
        self._build_ui()
        self._bind_shortcuts()

        self._check_platform_hints()

        # Services -------------------------------------------------------
        self._setup_hotkeys()
        self._start_capture()
        if self.settings.last_file and Path(self.settings.last_file).exists():
            self._open_path(Path(self.settings.last_file), interactive=False)

        self._persist_suspended = False
        self.root.protocol("WM_DELETE_WINDOW", self._on_closing)
        self._frame_job = self.root.after(self.FRAME_MS, self._frame)

    def _configure_window_geometry(self) -> None:
        width, height = self.DEFAULT_WINDOW_SIZE
        self.root.geometry(f"{width}x{height}")
        self.root.minsize(*self.MIN_WINDOW_SIZE)

    def _configure_styles(self) -> None:
        try:
            self.style.theme_use("clam")
        except tk.TclError:
            pass

        self.style.configure(".", font=("Segoe UI", 10))
        self.style.configure("Card.TLabelframe", borderwidth=1, relief="solid")
        self.style.configure("Card.TLabelframe.Label", font=("Segoe UI", 11, "bold"))
        self.style.configure("Toolbar.TButton", padding=(8, 6))
        self.style.configure("Accent.TButton", padding=(10, 6))
        self.style.configure("Time.TLabel", font=("Consolas", 12, "bold"))

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)

        container = ttk.Frame(self.root, padding=10)
        container.grid(row=0, column=0, sticky="nsew")
        container.columnconfigure(0, weight=1)
        container.rowconfigure(1, weight=1)

        notebook = ttk.Notebook(container)
        notebook.grid(row=1, column=0, sticky="nsew")
        timeline_tab = ttk.Frame(notebook, padding=8)
        options_tab = ttk.Frame(notebook, padding=8)
        notebook.add(timeline_tab, text="Timeline")
        notebook.add(options_tab, text="Options & Hotkeys")

        self._build_toolbar(container)
        self._build_timeline_tab(timeline_tab)
        self._build_options_tab(options_tab)

    def _build_toolbar(self, parent: ttk.Frame) -> None:
        bar = ttk.Frame(parent)
        bar.grid(row=0, column=0, sticky="ew", pady=(0, 8))

        buttons = [
            ("New", self._new_sequence),
            ("Open…", self._open_sequence),
            ("Save", self._save_sequence),
            ("Save as…", self._save_sequence_as),
            (None, None),
            ("Undo", self.engine.undo),
            ("Redo", self.engine.redo),
            ("Delete", self.engine.delete_selected),
            ("Cull moves", self.engine.cull_minor_moves),
            ("Add wait", self._add_wait_keyframe),
            ("Enable", lambda: self.engine.enable_selected(True)),
            ("Disable", lambda: self.engine.enable_selected(False)),
        ]
        column = 0
        for text, command in buttons:
            if text is None:
                ttk.Separator(bar, orient=tk.VERTICAL).grid(row=0, column=column, sticky="ns", padx=6)
            else:
                ttk.Button(bar, text=text, command=command, style="Toolbar.TButton").grid(
                    row=0, column=column, padx=(0, 4)
                )
            column += 1

        bar.columnconfigure(column, weight=1)
        column += 1
        self.record_button = ttk.Button(bar, text="● Record", command=self._toggle_recording, style="Accent.TButton")
        self.record_button.grid(row=0, column=column, padx=(0, 4))
        self.play_button = ttk.Button(bar, text="▶ Play", command=self.engine.toggle_play, style="Accent.TButton")
        self.play_button.grid(row=0, column=column + 1, padx=(0, 4))
        ttk.Button(bar, text="⏮", width=3, command=self.engine.reset_time).grid(row=0, column=column + 2, padx=(0, 4))
        ttk.Button(bar, text="⏭", width=3, command=self.engine.step_time).grid(row=0, column=column + 3, padx=(0, 8))
        ttk.Label(bar, textvariable=self.time_var, style="Time.TLabel", width=10).grid(row=0, column=column + 4)
        ttk.Button(bar, text="−", width=3, command=lambda: self._zoom(-10)).grid(row=0, column=column + 5, padx=(8, 2))
        ttk.Button(bar, text="+", width=3, command=lambda: self._zoom(10)).grid(row=0, column=column + 6)

    def _build_timeline_tab(self, parent: ttk.Frame) -> None:
        parent.columnconfigure(0, weight=1)
        parent.rowconfigure(0, weight=1)

        height = self.RULER_HEIGHT + ROW_HEIGHT * len(LANE_ROWS) + 4
        self.canvas = tk.Canvas(parent, height=height, background="#111827", highlightthickness=0)
        self.canvas.grid(row=0, column=0, sticky="nsew")
        self.canvas.bind("<Configure>", self._on_canvas_resized)
        self.canvas.bind("<ButtonPress-1>", self._on_pointer_press)
        self.canvas.bind("<B1-Motion>", lambda e: self._on_pointer_move(e, held=True))
        self.canvas.bind("<Motion>", lambda e: self._on_pointer_move(e, held=False))
        self.canvas.bind("<ButtonRelease-1>", self._on_pointer_release)
        self.canvas.bind("<MouseWheel>", self._on_wheel)
        self.canvas.bind("<Button-4>", lambda e: self._on_wheel(e, 120))
        self.canvas.bind("<Button-5>", lambda e: self._on_wheel(e, -120))

        playback = ttk.Frame(parent)
        playback.grid(row=1, column=0, sticky="ew", pady=(8, 0))
        ttk.Label(playback, text="Speed").grid(row=0, column=0, padx=(0, 4))
        ttk.Spinbox(playback, from_=0.1, to=10.0, increment=0.1, width=6, textvariable=self.speed_var).grid(
            row=0, column=1, padx=(0, 12)
        )
        ttk.Label(playback, text="Repeats").grid(row=0, column=2, padx=(0, 4))
        ttk.Spinbox(playback, from_=1, to=9999, width=6, textvariable=self.repeats_var).grid(row=0, column=3)

        self._build_status_section(parent)
        self._build_selection_panel(parent)

    def _build_selection_panel(self, parent: ttk.Frame) -> None:
        panel = ttk.LabelFrame(parent, text="Selected keyframe", padding=8, style="Card.TLabelframe")
        panel.grid(row=0, column=1, rowspan=3, sticky="nsew", padx=(8, 0))
        panel.columnconfigure(1, weight=1)

        ttk.Label(panel, textvariable=self.selection_title_var, font=("Segoe UI", 9, "bold")).grid(
            row=0, column=0, columnspan=2, sticky="w"
        )
        ttk.Label(panel, textvariable=self.selection_detail_var, wraplength=170).grid(
            row=1, column=0, columnspan=2, sticky="w", pady=(2, 6)
        )

        ttk.Label(panel, text="Timestamp").grid(row=2, column=0, sticky="w")
        self.timestamp_spin = ttk.Spinbox(
            panel, from_=0.0, to=MAX_EDIT_TIMESTAMP, increment=0.05, width=9, textvariable=self.edit_timestamp_var
        )
        self.timestamp_spin.grid(row=2, column=1, sticky="ew", pady=2)
        ttk.Label(panel, text="Duration").grid(row=3, column=0, sticky="w")
        self.duration_spin = ttk.Spinbox(
            panel, from_=0.0, to=MAX_EDIT_DURATION, increment=0.05, width=9, textvariable=self.edit_duration_var
        )
        self.duration_spin.grid(row=3, column=1, sticky="ew", pady=2)
        ttk.Label(panel, text="Button").grid(row=4, column=0, sticky="w")
        self.button_box = ttk.Combobox(
            panel, textvariable=self.edit_button_var, values=sorted(BUTTONS), state="disabled", width=8
        )
        self.button_box.grid(row=4, column=1, sticky="ew", pady=2)
        self.button_box.bind("<<ComboboxSelected>>", lambda _e: self._apply_selection_edit())

        for spin in (self.timestamp_spin, self.duration_spin):
            spin.bind("<Return>", lambda _e: self._apply_selection_edit())
            spin.bind("<<Increment>>", lambda _e: self.root.after_idle(self._apply_selection_edit))
            spin.bind("<<Decrement>>", lambda _e: self.root.after_idle(self._apply_selection_edit))
        self.apply_edit_button = ttk.Button(panel, text="Apply", command=self._apply_selection_edit)
        self.apply_edit_button.grid(row=5, column=1, sticky="e", pady=(6, 0))
        ttk.Label(panel, textvariable=self.selection_id_var, font=("Segoe UI", 7), foreground="#6b7280").grid(
            row=6, column=0, columnspan=2, sticky="w", pady=(6, 0)
        )
        self._set_selection_panel_enabled(False)

    def _build_status_section(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Status & Log", padding=8, style="Card.TLabelframe")
        frame.grid(row=2, column=0, sticky="nsew", pady=(8, 0))
        frame.columnconfigure(0, weight=1)

        ttk.Label(frame, textvariable=self.status_var).grid(row=0, column=0, sticky="w")
        self.log_text = scrolledtext.ScrolledText(frame, height=5, state=tk.DISABLED, wrap=tk.WORD)
        self.log_text.grid(row=1, column=0, sticky="nsew", pady=(6, 0))

        button_bar = ttk.Frame(frame)
        button_bar.grid(row=2, column=0, sticky="e", pady=(6, 0))
        ttk.Button(button_bar, text="Clear log", command=self._clear_log_output).grid(row=0, column=0, padx=(0, 6))
        ttk.Button(button_bar, text="Export log", command=self._export_logs).grid(row=0, column=1)

    def _build_options_tab(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Recording", padding=10, style="Card.TLabelframe")
        frame.grid(row=0, column=0, sticky="nsew")
        ttk.Checkbutton(
            frame,
            text="Clear timeline before recording",
            variable=self.clear_before_var,
            command=self._on_recording_options_changed,
        ).grid(row=0, column=0, columnspan=2, sticky="w")
        ttk.Label(frame, text="Stop playback when the pointer leaves the screen at").grid(
            row=1, column=0, sticky="w", pady=(8, 0)
        )
        edge_box = ttk.Combobox(
            frame,
            textvariable=self.failsafe_var,
            values=[edge.value for edge in MonitorEdge],
            state="readonly",
            width=8,
        )
        edge_box.grid(row=1, column=1, sticky="w", padx=(6, 0), pady=(8, 0))
        edge_box.bind("<<ComboboxSelected>>", lambda _e: self._on_recording_options_changed())

        hotkeys = ttk.LabelFrame(parent, text="Hotkeys", padding=10, style="Card.TLabelframe")
        hotkeys.grid(row=0, column=1, sticky="nsew", padx=(12, 0))
        rows = [
            ("Record / stop recording", self.record_hotkey_var),
            ("Stop playback", self.stop_hotkey_var),
            ("Add pointer keyframe", self.add_hotkey_var),
        ]
        for row, (label, var) in enumerate(rows):
            ttk.Label(hotkeys, text=label).grid(row=row, column=0, sticky="w", pady=2)
            ttk.Entry(hotkeys, textvariable=var, width=12).grid(row=row, column=1, padx=(6, 0), pady=2)
        ttk.Button(hotkeys, text="Apply", command=self._apply_hotkeys).grid(
            row=len(rows), column=1, sticky="e", pady=(8, 0)
        )

    def _bind_shortcuts(self) -> None:
        bindings = {
            "<Delete>": self.engine.delete_selected,
            "<Control-z>": self.engine.undo,
            "<Control-y>": self.engine.redo,
            "<Control-c>": self.engine.copy,
            "<Control-x>": self.engine.cut,
            "<Control-v>": self.engine.paste,
            "<Control-a>": self.engine.store.select_all,
            "<Control-s>": self._save_sequence,
            "<Control-o>": self._open_sequence,
            "<Control-n>": self._new_sequence,
            "<space>": self.engine.toggle_play,
            "<Right>": self.engine.store.select_next,
            "<Left>": self.engine.store.select_previous,
            "<Escape>": self.engine.interaction.cancel,
        }
        for sequence, handler in bindings.items():
            self.canvas.bind(sequence, lambda _e, h=handler: h())

    # ------------------------------------------------------------------
    # Frame loop & drawing
    # ------------------------------------------------------------------
    def _frame(self) -> None:
        now = time.perf_counter()
        delta = now - self._last_frame
        self._last_frame = now

        self.engine.tick(delta)
        self._flush_log_queue()
        self._refresh_controls()
        self._refresh_selection_panel()
        self._redraw()

        self._frame_job = self.root.after(self.FRAME_MS, self._frame)

    def _refresh_controls(self) -> None:
        state = self.engine.state
        self.time_var.set(f"{self.engine.time:.3f} s")
        self.record_button.configure(text="■ Stop" if state is EngineState.RECORDING else "● Record")
        self.play_button.configure(text="⏸ Pause" if state is EngineState.PLAYING else "▶ Play")
        marker = " *" if self.engine.modified else ""
        name = self.current_path.name if self.current_path else "untitled"
        self.root.title(f"Automate - {name}{marker}")

    def _refresh_selection_panel(self) -> None:
        keyframe = self.engine.selected_keyframe()
        shown = None if keyframe is None else (keyframe.id, keyframe.timestamp, keyframe.duration, keyframe.variant)
        if shown == self._shown_selection:
            return
        self._shown_selection = shown
        if keyframe is None:
            self.selection_title_var.set("Nothing selected")
            self.selection_detail_var.set("")
            self.selection_id_var.set("")
            self.edit_timestamp_var.set("")
            self.edit_duration_var.set("")
            self.edit_button_var.set("")
            self._set_selection_panel_enabled(False)
            return

        title, detail = describe_keyframe(keyframe)
        self.selection_title_var.set(title)
        self.selection_detail_var.set(detail)
        self.selection_id_var.set(f"UID: {keyframe.id}")
        self.edit_timestamp_var.set(f"{keyframe.timestamp:.3f}")
        self.edit_duration_var.set(f"{keyframe.duration:.3f}")
        is_button = isinstance(keyframe.variant, MouseButton)
        self.edit_button_var.set(keyframe.variant.button if is_button else "")
        self._set_selection_panel_enabled(True, button=is_button)

    def _set_selection_panel_enabled(self, enabled: bool, button: bool = False) -> None:
        state = "normal" if enabled else "disabled"
        self.timestamp_spin.configure(state=state)
        self.duration_spin.configure(state=state)
        self.apply_edit_button.configure(state=state)
        self.button_box.configure(state="readonly" if enabled and button else "disabled")

    def _apply_selection_edit(self) -> None:
        keyframe = self.engine.selected_keyframe()
        if keyframe is None:
            return
        try:
            timestamp = float(self.edit_timestamp_var.get())
            duration = float(self.edit_duration_var.get())
        except ValueError:
            self.logger.log_warning("Timestamp and duration must be numbers")
            self._shown_selection = None
            return
        button = self.edit_button_var.get() if isinstance(keyframe.variant, MouseButton) else None
        try:
            self.engine.edit_selected(timestamp=timestamp, duration=duration, button=button)
        except ValueError as exc:
            self.logger.log_warning(str(exc))
        # Show the clamped values.
        self._shown_selection = None

    def _redraw(self) -> None:
        canvas = self.canvas
        viewport = self.engine.viewport
        canvas.delete("all")
        width = viewport.width

        for t in tick_times(width, viewport.scale, viewport.scroll):
            x = viewport.x_for_time(t)
            canvas.create_line(x, 0, x, self.RULER_HEIGHT, fill="#4b5563")
            canvas.create_text(x + 2, 2, text=f"{t:g}", anchor="nw", fill="#9ca3af", font=("Segoe UI", 8))

        for lane, row in LANE_ROWS.items():
            y = viewport.top + row * ROW_HEIGHT
            canvas.create_line(0, y + ROW_HEIGHT, width, y + ROW_HEIGHT, fill="#1f2937")

        store = self.engine.store
        for keyframe in store:
            rect = self.engine.interaction.keyframe_rect(keyframe)
            if rect is None:
                continue
            self._draw_keyframe(keyframe, rect, store.is_selected(keyframe.id))

        box = self.engine.interaction.selection_rect
        if box is not None:
            canvas.create_rectangle(box.x0, box.y0, box.x1, box.y1, outline="#fbbf24", dash=(3, 2))

        playhead = viewport.x_for_time(self.engine.time)
        canvas.create_line(playhead, 0, playhead, canvas.winfo_height(), fill="#ef4444", width=2)

    def _draw_keyframe(self, keyframe: Keyframe, rect, selected: bool) -> None:
        fill = self._LANE_COLORS[keyframe.lane] if keyframe.enabled else "#4b5563"
        outline = "#fbbf24" if selected else "#e5e7eb"
        self.canvas.create_rectangle(rect.x0, rect.y0, rect.x1, rect.y1, fill=fill, outline=outline, width=2 if selected else 1)
        label = keyframe.label()
        if label and rect.width > 12:
            self.canvas.create_text(
                rect.x0 + 3, (rect.y0 + rect.y1) / 2, text=label, anchor="w", fill="white", font=("Segoe UI", 8)
            )

    # ------------------------------------------------------------------
    # Canvas events
    # ------------------------------------------------------------------
    def _on_canvas_resized(self, event) -> None:
        self.engine.resize_view(width=float(event.width), top=float(self.RULER_HEIGHT))

    def _on_pointer_press(self, event) -> None:
        if self.engine.recording or self.engine.playing:
            return
        self.canvas.focus_set()
        additive = bool(event.state & 0x0004)  # Control
        if event.y < self.RULER_HEIGHT:
            self.engine.seek(self.engine.viewport.time_for_x(event.x))
            return
        self.engine.interaction.pointer_press(event.x, event.y, additive=additive)

    def _on_pointer_move(self, event, held: bool) -> None:
        hint = self.engine.interaction.pointer_move(event.x, event.y, button_held=held)
        if self.engine.interaction.mode in (InteractionMode.DRAGGING, InteractionMode.RESIZING):
            self.engine.modified = True
        self.canvas.configure(cursor=self._CURSORS.get(hint, ""))

    def _on_pointer_release(self, event) -> None:
        self.engine.interaction.pointer_release(event.x, event.y)

    def _on_wheel(self, event, delta: Optional[int] = None) -> None:
        amount = (delta if delta is not None else event.delta) / 120
        if event.state & 0x0004:
            self._zoom(amount)
        else:
            self.engine.scroll(-amount * 10)

    # ------------------------------------------------------------------
    # File handling
    # ------------------------------------------------------------------
    def _confirm_discard(self) -> bool:
        if not self.engine.modified:
            return True
        return messagebox.askyesno("Automate", "Discard unsaved changes?")

    def _new_sequence(self) -> None:
        if not self._confirm_discard():
            return
        self.engine.new()
        self.current_path = None
        self._log_message("New sequence")

    def _open_sequence(self) -> None:
        if not self._confirm_discard():
            return
        path = filedialog.askopenfilename(filetypes=self.FILE_TYPES)
        if path:
            self._open_path(Path(path))

    def _open_path(self, path: Path, interactive: bool = True) -> None:
        try:
            self.engine.load_from_path(path)
        except SnapshotError as exc:
            self.logger.log_error(f"Could not open {path}: {exc}")
            if interactive:
                messagebox.showerror("Open", f"Could not open {path.name}:\n{exc}")
            return
        self.current_path = path
        self.speed_var.set(self.engine.speed)
        self.repeats_var.set(self.engine.repeats)
        self.settings.last_file = str(path)
        self._persist_settings()

    def _save_sequence(self) -> None:
        if self.current_path is None:
            self._save_sequence_as()
            return
        self._save_to(self.current_path)

    def _save_sequence_as(self) -> None:
        path = filedialog.asksaveasfilename(defaultextension=".json", filetypes=self.FILE_TYPES)
        if path:
            self._save_to(Path(path))

    def _save_to(self, path: Path) -> None:
        try:
            self.engine.save_to_path(path)
        except OSError as exc:
            self.logger.log_error(f"Could not save {path}: {exc}")
            messagebox.showerror("Save", f"Could not save {path.name}:\n{exc}")
            return
        self.current_path = path
        self.settings.last_file = str(path)
        self._persist_settings()

    def _zoom(self, delta: float) -> None:
        self.engine.zoom(delta)
        self._persist_settings()

    def _toggle_recording(self) -> None:
        if not self.engine.recording and not self.capture_service.running:
            try:
                self.capture_service.start()
            except CaptureError as exc:
                self.engine.abort(exc)
                messagebox.showerror("Record", f"Input capture is unavailable:\n{exc}")
                return
        self.engine.toggle_recording()

    def _add_wait_keyframe(self) -> None:
        self.engine.add_keyframe(Keyframe.wait(self.engine.time, 1.0))

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------
    def _on_playback_options_changed(self) -> None:
        try:
            speed = float(self.speed_var.get())
            repeats = int(self.repeats_var.get())
        except (tk.TclError, ValueError):
            return
        if speed > 0:
            self.engine.speed = speed
        if repeats >= 1:
            self.engine.repeats = repeats
        self._persist_settings()

    def _on_recording_options_changed(self) -> None:
        self.engine.clear_before_recording = bool(self.clear_before_var.get())
        self._persist_settings()

    def _failsafe_crossed(self, x: int, y: int) -> bool:
        if self._screen_size is None:
            self._screen_size = self._get_primary_screen_size()
        edge = MonitorEdge(self.failsafe_var.get())
        return edge.is_crossed(x, y, *self._screen_size)

    def _get_primary_screen_size(self) -> Tuple[int, int]:
        """Size of the primary monitor; the failsafe fires once the pointer leaves it."""
        try:
            from screeninfo import get_monitors  # type: ignore
            monitors = get_monitors()
            primary = next((m for m in monitors if getattr(m, "is_primary", False)), monitors[0])
            return int(primary.width), int(primary.height)
        except Exception:
            # Fallback to pyautogui's view of the main screen
            width, height = pyautogui.size()
            return int(width), int(height)

    # ------------------------------------------------------------------
    # Hotkeys, capture & logging
    # ------------------------------------------------------------------
    def _setup_hotkeys(self) -> None:
        self.hotkey_manager.register_record_callback(lambda: self.engine.post(ControlCommand.TOGGLE_RECORDING))
        self.hotkey_manager.register_stop_callback(lambda: self.engine.post(ControlCommand.STOP_PLAYBACK))
        self.hotkey_manager.register_add_keyframe_callback(
            lambda: self.engine.post(ControlCommand.ADD_MOVE_KEYFRAME)
        )
        ok = self.hotkey_manager.enable_hotkeys()
        if not ok:
            self._log_message("Global hotkeys could not be registered. Check system permissions.", level="WARNING")

    def _apply_hotkeys(self) -> None:
        record = self.record_hotkey_var.get().strip() or "F8"
        stop = self.stop_hotkey_var.get().strip() or "Esc"
        add = self.add_hotkey_var.get().strip() or "F9"
        if self.hotkey_manager.update_hotkeys(record, stop, add):
            self.settings.record_hotkey = record
            self.settings.stop_hotkey = stop
            self.settings.add_keyframe_hotkey = add
            self.engine.recorder.ignored_keys = self.settings.hotkey_names()
            self._log_message(f"Hotkeys updated: record={record}, stop={stop}, add={add}")
            self._persist_settings()
        else:
            messagebox.showwarning("Hotkeys", "Hotkeys could not be updated.")

    def _start_capture(self) -> None:
        try:
            self.capture_service.start()
        except CaptureError as exc:
            self.engine.abort(exc)
            self._log_message(f"Recording unavailable: {exc}", level="WARNING")

    def _flush_log_queue(self) -> None:
        entries: List[LogEntry] = []
        while True:
            try:
                entries.append(self._log_queue.get_nowait())
            except queue.Empty:
                break
        if not entries:
            return
        self.log_text.configure(state=tk.NORMAL)
        for entry in entries:
            self.log_text.insert(tk.END, str(entry) + "\n")
        self.log_text.see(tk.END)
        self.log_text.configure(state=tk.DISABLED)
        self.status_var.set(f"Status: {self.logger.get_current_status()}")

    def _log_message(self, message: str, level: str = "INFO") -> None:
        if level == "INFO":
            self.logger.update_status(message)
        elif level == "WARNING":
            self.logger.log_warning(message)
        else:
            self.logger.log_error(message)

    def _clear_log_output(self) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.delete("1.0", tk.END)
        self.log_text.configure(state=tk.DISABLED)
        self.logger.clear_logs()

    def _export_logs(self) -> None:
        path = filedialog.asksaveasfilename(
            defaultextension=".txt",
            filetypes=[("Text files", "*.txt"), ("All files", "*.*")],
        )
        if not path:
            return
        if self.logger.export_logs_to_file(path):
            messagebox.showinfo("Export", "Log exported.")
        else:
            messagebox.showerror("Export", "Log could not be exported.")

    def _persist_settings(self) -> None:
        if self._persist_suspended:
            return
        self.settings.playback_speed = self.engine.speed
        self.settings.repeats = self.engine.repeats
        self.settings.timeline_scale = self.engine.scale
        self.settings.clear_before_recording = bool(self.clear_before_var.get())
        self.settings.failsafe_edge = MonitorEdge(self.failsafe_var.get())
        try:
            self.settings_manager.save(self.settings)
        except OSError as exc:
            self.logger.log_warning(f"Could not save settings: {exc}")

    def _on_closing(self) -> None:
        if not self._confirm_discard():
            return
        if self._frame_job:
            self.root.after_cancel(self._frame_job)
        self.engine.new()
        self.capture_service.stop()
        self.hotkey_manager.disable_hotkeys()
        self._persist_settings()
        self.root.destroy()

    # ------------------------------------------------------------------
    # Platform checks (Linux)
    # ------------------------------------------------------------------
    def _check_platform_hints(self) -> None:
        if not sys.platform.startswith("linux"):
            return
        session = os.environ.get("XDG_SESSION_TYPE", "").strip().lower()
        if session == "wayland":
            self._log_message(
                "Linux/Wayland detected - global hotkeys and input capture may be limited. An Xorg session is recommended.",
                level="WARNING",
            )
        if shutil.which("xdotool") is None and session != "wayland":
            self.logger.log_debug("xdotool not found; pyautogui fallback may be limited")
