"""
Persistence codec: session snapshot <-> JSON document.

Document layout::

    {
      "format": "automate.sequence",
      "version": 1,
      "scale": 0.5,
      "speed": 1.0,
      "repeats": 1,
      "keyframes": [
        {"id": "<uuid hex>", "timestamp": 1.0, "duration": 0.4,
         "enabled": true, "type": "key_press", "key": "a"},
        ...
      ]
    }

Optional fields fall back to defaults and unknown fields are ignored, so
older documents keep loading when fields are added. Decoding is
all-or-nothing: any problem raises SnapshotError before anything is built.
"""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .keyframe import (
    Keyframe,
    KeyPress,
    MouseButton,
    MouseMove,
    Scroll,
    Variant,
    Wait,
    is_known_button,
    is_known_key,
)
from .store import TimelineStore
from .transform import DEFAULT_SCALE, MAX_SCALE, MIN_SCALE


FORMAT_NAME = "automate.sequence"
FORMAT_VERSION = 1


class SnapshotError(ValueError):
    """Raised when a document cannot be turned into a session."""


_TYPE_NAMES = {
    KeyPress: "key_press",
    MouseButton: "mouse_button",
    MouseMove: "mouse_move",
    Scroll: "scroll",
    Wait: "wait",
}


@dataclass
class Snapshot:
    """Everything needed to resume an editing session."""
    keyframes: List[Keyframe] = field(default_factory=list)
    scale: float = DEFAULT_SCALE
    speed: float = 1.0
    repeats: int = 1


def to_snapshot(store: TimelineStore, scale: float = DEFAULT_SCALE, speed: float = 1.0, repeats: int = 1) -> Snapshot:
    return Snapshot(keyframes=[_copy(kf) for kf in store], scale=scale, speed=speed, repeats=repeats)


def from_snapshot(snapshot: Snapshot) -> TimelineStore:
    """Fresh store with copies of the snapshot's keyframes; selection is empty."""
    return TimelineStore(_copy(kf) for kf in snapshot.keyframes)


def _copy(keyframe: Keyframe) -> Keyframe:
    return Keyframe(
        timestamp=keyframe.timestamp,
        duration=keyframe.duration,
        variant=keyframe.variant,
        enabled=keyframe.enabled,
        id=keyframe.id,
    )


# Encoding ---------------------------------------------------------------

def keyframe_to_dict(keyframe: Keyframe) -> Dict[str, Any]:
    variant = keyframe.variant
    data: Dict[str, Any] = {
        "id": keyframe.id.hex,
        "timestamp": keyframe.timestamp,
        "duration": keyframe.duration,
        "enabled": keyframe.enabled,
        "type": _TYPE_NAMES[type(variant)],
    }
    if isinstance(variant, KeyPress):
        data["key"] = variant.key
    elif isinstance(variant, MouseButton):
        data["button"] = variant.button
    elif isinstance(variant, MouseMove):
        data["x"], data["y"] = variant.x, variant.y
    elif isinstance(variant, Scroll):
        data["dx"], data["dy"] = variant.dx, variant.dy
    elif isinstance(variant, Wait):
        data["seconds"] = variant.seconds
    return data


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "scale": snapshot.scale,
        "speed": snapshot.speed,
        "repeats": snapshot.repeats,
        "keyframes": [keyframe_to_dict(kf) for kf in snapshot.keyframes],
    }


def dumps(snapshot: Snapshot) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False)


# Decoding ---------------------------------------------------------------

def _number(data: Dict[str, Any], name: str, default: Any = None, minimum: float = 0.0) -> float:
    raw = data.get(name, default)
    if raw is None:
        raise SnapshotError(f"Missing field {name!r}")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise SnapshotError(f"Field {name!r} must be a number, got {raw!r}")
    value = float(raw)
    if not math.isfinite(value) or value < minimum:
        raise SnapshotError(f"Field {name!r} out of range: {raw!r}")
    return value


def _integer(data: Dict[str, Any], name: str) -> int:
    raw = data.get(name)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise SnapshotError(f"Field {name!r} must be an integer, got {raw!r}")
    return raw


def _variant_from_dict(data: Dict[str, Any]) -> Variant:
    kind = data.get("type")
    if kind == "key_press":
        key = data.get("key")
        if not is_known_key(key):
            raise SnapshotError(f"Unknown key {key!r}")
        return KeyPress(key)
    if kind == "mouse_button":
        button = data.get("button")
        if not is_known_button(button):
            raise SnapshotError(f"Unknown mouse button {button!r}")
        return MouseButton(button)
    if kind == "mouse_move":
        return MouseMove(_integer(data, "x"), _integer(data, "y"))
    if kind == "scroll":
        return Scroll(_integer(data, "dx"), _integer(data, "dy"))
    if kind == "wait":
        return Wait(_number(data, "seconds"))
    raise SnapshotError(f"Unknown keyframe type {kind!r}")


def keyframe_from_dict(data: Any) -> Keyframe:
    if not isinstance(data, dict):
        raise SnapshotError(f"Keyframe entry must be an object, got {type(data).__name__}")
    try:
        keyframe_id = uuid.UUID(str(data.get("id")))
    except ValueError as e:
        raise SnapshotError(f"Invalid keyframe id {data.get('id')!r}") from e
    variant = _variant_from_dict(data)
    timestamp = _number(data, "timestamp")
    duration = variant.seconds if isinstance(variant, Wait) else _number(data, "duration")
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise SnapshotError(f"Field 'enabled' must be a boolean, got {enabled!r}")
    return Keyframe(timestamp=timestamp, duration=duration, variant=variant, enabled=enabled, id=keyframe_id)


def snapshot_from_dict(data: Any) -> Snapshot:
    if not isinstance(data, dict):
        raise SnapshotError("Sequence document must be a JSON object")
    if data.get("format", FORMAT_NAME) != FORMAT_NAME:
        raise SnapshotError(f"Not a sequence document: format {data.get('format')!r}")
    version = data.get("version", FORMAT_VERSION)
    if not isinstance(version, int) or version > FORMAT_VERSION:
        raise SnapshotError(f"Unsupported document version {version!r}")

    raw_keyframes = data.get("keyframes", [])
    if not isinstance(raw_keyframes, list):
        raise SnapshotError("Field 'keyframes' must be a list")
    keyframes = [keyframe_from_dict(raw) for raw in raw_keyframes]
    ids = [kf.id for kf in keyframes]
    if len(set(ids)) != len(ids):
        raise SnapshotError("Duplicate keyframe ids")

    scale = min(MAX_SCALE, max(MIN_SCALE, _number(data, "scale", DEFAULT_SCALE)))
    speed = _number(data, "speed", 1.0)
    if speed <= 0:
        raise SnapshotError("Field 'speed' must be positive")
    repeats = data.get("repeats", 1)
    if isinstance(repeats, bool) or not isinstance(repeats, int) or repeats < 1:
        raise SnapshotError(f"Field 'repeats' must be a positive integer, got {repeats!r}")
    return Snapshot(keyframes=keyframes, scale=scale, speed=speed, repeats=repeats)


def loads(text: str) -> Snapshot:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Invalid JSON: {e}") from e
    return snapshot_from_dict(data)


# Files ------------------------------------------------------------------

def write_file(path: Path, snapshot: Snapshot) -> None:
    """Write atomically through a temporary file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(dumps(snapshot), encoding="utf-8")
    tmp_path.replace(path)


def read_file(path: Path) -> Snapshot:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SnapshotError(f"Could not read {path}: {e}") from e
    return loads(text)
