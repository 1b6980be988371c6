"""
Small CLI to replay a saved sequence without the GUI.

Usage:
    python run_sequence.py recording.json [--repeats N] [--speed X]
"""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import List, Optional

from logger import StatusLogger
from sequencer import SequencerEngine, SnapshotError

FRAME_SECONDS = 1 / 60


def _option(args: List[str], name: str) -> Optional[str]:
    if name in args:
        index = args.index(name)
        if index + 1 < len(args):
            return args[index + 1]
        raise ValueError(f"{name} needs a value")
    return None


def main(argv: Optional[List[str]] = None, engine: Optional[SequencerEngine] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Provide path to a sequence JSON file.")
        return 2
    path = Path(args[0])
    if not path.exists():
        print(f"File not found: {path}")
        return 2

    logger = StatusLogger()
    logger.subscribe(lambda entry: print(entry))
    engine = engine or SequencerEngine(logger=logger)
    try:
        engine.load_from_path(path)
        repeats = _option(args, "--repeats")
        speed = _option(args, "--speed")
        if repeats is not None:
            engine.repeats = max(1, int(repeats))
        if speed is not None:
            engine.speed = float(speed)
    except (SnapshotError, ValueError) as exc:
        print(f"Cannot run {path}: {exc}")
        return 2

    if len(engine.store) == 0:
        print("Sequence is empty.")
        return 0

    engine.toggle_play()
    last = time.perf_counter()
    try:
        while engine.playing:
            time.sleep(FRAME_SECONDS)
            now = time.perf_counter()
            engine.tick(now - last)
            last = now
    except KeyboardInterrupt:
        engine.new()
        print("Interrupted.")
        return 130
    print(f"DONE: {'error' if engine.last_error else 'ok'}")
    return 1 if engine.last_error else 0


if __name__ == "__main__":
    raise SystemExit(main())
