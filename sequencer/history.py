"""Undo/redo history built from keyframe list checkpoints."""

from __future__ import annotations

import copy
from typing import List, Optional

from .keyframe import Keyframe
from .store import TimelineStore


MAX_HISTORY = 100

Checkpoint = List[Keyframe]


def checkpoint(store: TimelineStore) -> Checkpoint:
    """Deep copy of the store's keyframes (ids preserved)."""
    return copy.deepcopy(list(store))


class EditHistory:
    """
    Two stacks of checkpoints.

    Callers record the state *before* a mutation. Undo swaps the current
    state with the top of the undo stack and pushes the current state onto
    the redo stack.
    """

    def __init__(self, limit: int = MAX_HISTORY) -> None:
        self._undo: List[Checkpoint] = []
        self._redo: List[Checkpoint] = []
        self._limit = limit

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def record(self, store: TimelineStore) -> None:
        self.push(checkpoint(store))

    def push(self, before: Checkpoint) -> None:
        self._undo.append(before)
        if len(self._undo) > self._limit:
            del self._undo[0]
        self._redo.clear()

    def undo(self, store: TimelineStore) -> bool:
        return self._swap(store, self._undo, self._redo)

    def redo(self, store: TimelineStore) -> bool:
        return self._swap(store, self._redo, self._undo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    @staticmethod
    def _swap(store: TimelineStore, source: List[Checkpoint], target: List[Checkpoint]) -> bool:
        state: Optional[Checkpoint] = source.pop() if source else None
        if state is None:
            return False
        target.append(checkpoint(store))
        store.replace_all(state)
        return True
