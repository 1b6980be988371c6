"""
Timeline store: the ordered keyframe collection plus selection state.

Keyframes are kept in insertion order. Time order is derived on demand
(``in_time_order``) because drags and resizes reorder keyframes in time
constantly while their identity stays the same.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Iterator, List, Optional

from .keyframe import Keyframe, Lane


class TimelineStore:
    """Owns every keyframe of the editing session."""

    def __init__(self, keyframes: Optional[Iterable[Keyframe]] = None) -> None:
        self._keyframes: List[Keyframe] = []
        self._selected: List[uuid.UUID] = []
        for keyframe in keyframes or ():
            self.add(keyframe)

    # Collection protocol ---------------------------------------------

    def __len__(self) -> int:
        return len(self._keyframes)

    def __iter__(self) -> Iterator[Keyframe]:
        return iter(list(self._keyframes))

    def __contains__(self, keyframe_id: object) -> bool:
        return self.get(keyframe_id) is not None  # type: ignore[arg-type]

    # Queries ----------------------------------------------------------

    def get(self, keyframe_id: uuid.UUID) -> Optional[Keyframe]:
        for keyframe in self._keyframes:
            if keyframe.id == keyframe_id:
                return keyframe
        return None

    def iter_lane(self, lane: Lane) -> List[Keyframe]:
        """Keyframes of one lane in insertion order."""
        return [kf for kf in self._keyframes if kf.lane == lane]

    def in_time_order(self) -> List[Keyframe]:
        """Keyframes sorted by timestamp; ties keep insertion order."""
        return sorted(self._keyframes, key=lambda kf: kf.timestamp)

    def end_time(self) -> float:
        """Latest keyframe end, 0.0 for an empty timeline."""
        return max((kf.end for kf in self._keyframes), default=0.0)

    # Mutation ---------------------------------------------------------

    def add(self, keyframe: Keyframe) -> Keyframe:
        """
        Append a keyframe.

        Negative timestamps or durations are clamped to zero rather than
        rejected. Adding a keyframe whose id is already present is a
        programming error.
        """
        if self.get(keyframe.id) is not None:
            raise ValueError(f"Duplicate keyframe id: {keyframe.id}")
        keyframe.set_timestamp(keyframe.timestamp)
        keyframe.set_duration(keyframe.duration)
        self._keyframes.append(keyframe)
        return keyframe

    def remove(self, keyframe_id: uuid.UUID) -> Optional[Keyframe]:
        """Remove and return a keyframe; unknown ids are a no-op."""
        for index, keyframe in enumerate(self._keyframes):
            if keyframe.id == keyframe_id:
                del self._keyframes[index]
                if keyframe_id in self._selected:
                    self._selected.remove(keyframe_id)
                return keyframe
        return None

    def remove_selected(self) -> List[Keyframe]:
        removed = [kf for kf in self._keyframes if kf.id in self._selected]
        self._keyframes = [kf for kf in self._keyframes if kf.id not in self._selected]
        self._selected.clear()
        return removed

    def set_enabled(self, keyframe_ids: Iterable[uuid.UUID], enabled: bool) -> int:
        wanted = set(keyframe_ids)
        count = 0
        for keyframe in self._keyframes:
            if keyframe.id in wanted and keyframe.enabled != enabled:
                keyframe.enabled = enabled
                count += 1
        return count

    def replace_all(self, keyframes: Iterable[Keyframe]) -> None:
        """Swap the whole collection; the selection keeps only surviving ids."""
        fresh = TimelineStore(keyframes)
        self._keyframes = fresh._keyframes
        self._selected = [kid for kid in self._selected if fresh.get(kid) is not None]

    def clear(self) -> None:
        self._keyframes.clear()
        self._selected.clear()

    # Selection --------------------------------------------------------

    @property
    def selected_id(self) -> Optional[uuid.UUID]:
        """Primary selection: the most recently selected keyframe."""
        return self._selected[-1] if self._selected else None

    @property
    def selected_ids(self) -> List[uuid.UUID]:
        return list(self._selected)

    def is_selected(self, keyframe_id: uuid.UUID) -> bool:
        return keyframe_id in self._selected

    def select(self, keyframe_id: Optional[uuid.UUID], additive: bool = False) -> None:
        """Select a keyframe; ``None`` or an unknown id clears the selection."""
        if keyframe_id is None or self.get(keyframe_id) is None:
            if not additive:
                self._selected.clear()
            return
        if not additive:
            self._selected.clear()
        if keyframe_id in self._selected:
            self._selected.remove(keyframe_id)
        self._selected.append(keyframe_id)

    def toggle_selection(self, keyframe_id: uuid.UUID) -> None:
        if keyframe_id in self._selected:
            self._selected.remove(keyframe_id)
        else:
            self.select(keyframe_id, additive=True)

    def select_all(self) -> None:
        self._selected = [kf.id for kf in self._keyframes]

    def deselect(self) -> None:
        self._selected.clear()

    def select_next(self) -> Optional[uuid.UUID]:
        return self._step_selection(+1)

    def select_previous(self) -> Optional[uuid.UUID]:
        return self._step_selection(-1)

    def _step_selection(self, direction: int) -> Optional[uuid.UUID]:
        ordered = self.in_time_order()
        if not ordered:
            return None
        ids = [kf.id for kf in ordered]
        current = self.selected_id
        if current is None:
            index = 0 if direction > 0 else len(ids) - 1
        else:
            index = max(0, min(len(ids) - 1, ids.index(current) + direction))
        self.select(ids[index])
        return ids[index]
