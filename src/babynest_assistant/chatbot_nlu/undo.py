"""Bounded history of reversible journal actions.

Every reversible dispatch leaves an :class:`ActionLogEntry` carrying one of
three reversal variants.  Undoing an entry runs the inverse store call for
its variant and only then marks the entry as undone.
"""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

from loguru import logger

from ..records import RecordStore, StoreError


@dataclass(frozen=True)
class Creation:
    """A record was created; undo deletes it."""

    category: str
    record_id: int


@dataclass(frozen=True)
class Update:
    """A record was modified; undo writes back the previous field values."""

    category: str
    record_id: int
    previous: Dict[str, Any]


@dataclass(frozen=True)
class Deletion:
    """Records were deleted; undo re-inserts them with their original ids."""

    category: str
    records: Tuple[Dict[str, Any], ...]


Reversal = Union[Creation, Update, Deletion]


def apply_inverse(store: RecordStore, reversal: Reversal) -> str:
    """Run the inverse store operation for ``reversal``.

    Returns a short description of what was reverted.
    """

    if isinstance(reversal, Creation):
        store.delete(reversal.category, reversal.record_id)
        return f"removed {reversal.category.replace('_', ' ')} entry #{reversal.record_id}"
    if isinstance(reversal, Update):
        store.update(reversal.category, reversal.record_id, reversal.previous)
        return f"restored {reversal.category.replace('_', ' ')} entry #{reversal.record_id}"
    if isinstance(reversal, Deletion):
        store.restore(reversal.category, reversal.records)
        ids = ", ".join(f"#{r['id']}" for r in reversal.records)
        return f"brought back {reversal.category.replace('_', ' ')} entry {ids}"
    raise TypeError(f"Unknown reversal {reversal!r}")


@dataclass
class ActionLogEntry:
    intent: str
    parameters: Dict[str, Any]
    message: str
    reversal: Reversal
    record_ids: List[int] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)
    executed: bool = True
    undone: bool = False


@dataclass
class UndoResult:
    success: bool
    message: str
    entry: Optional[ActionLogEntry] = None


class UndoLog:
    """Most recent reversible actions, oldest evicted first."""

    def __init__(self, store: RecordStore, capacity: int = 50) -> None:
        self.store = store
        self.capacity = capacity
        self.entries: Deque[ActionLogEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self.entries)

    def record(self, entry: ActionLogEntry) -> None:
        self.entries.append(entry)
        logger.debug(f"Recorded {entry.intent} as undo entry {entry.id}")

    def last_undoable(self, category: Optional[str] = None) -> Optional[ActionLogEntry]:
        for entry in reversed(self.entries):
            if not entry.executed or entry.undone:
                continue
            if category and entry.reversal.category != category:
                continue
            return entry
        return None

    def undo_last(self, category: Optional[str] = None) -> UndoResult:
        """Reverse the newest entry that has not been undone yet.

        ``category`` limits the search to actions on that record category.
        A failing inverse leaves the entry untouched.
        """

        entry = self.last_undoable(category)
        if entry is None:
            scope = f" for {category.replace('_', ' ')}" if category else ""
            return UndoResult(False, f"Nothing to undo{scope}.")
        try:
            description = apply_inverse(self.store, entry.reversal)
        except StoreError as exc:
            logger.warning(f"Undo of {entry.id} failed: {exc}")
            return UndoResult(False, f"Couldn't undo the last action: {exc}", entry)
        entry.undone = True
        logger.info(f"Undid {entry.intent} ({entry.id})")
        return UndoResult(True, f"Undone: {description}.", entry)
