"""
Undo/redo over visual style edits.

Changes pushed in quick succession are accumulated as pending and committed
as one batch once the batch delay passes without new input. The debounce is
an explicit deadline kept in the history itself: every call first commits a
batch whose deadline has elapsed, and ``poll()`` lets an event loop or timer
commit without new input.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import config

from codeui.logger import get_logger
from codeui.models import StyleChange

logger = get_logger(__name__)

ChangeBatch = List[StyleChange]


@dataclass
class HistoryState:
    past: List[ChangeBatch] = field(default_factory=list)
    present: Optional[ChangeBatch] = None
    future: List[ChangeBatch] = field(default_factory=list)


def _same_target(a: StyleChange, b: StyleChange) -> bool:
    return a.selector == b.selector and a.property == b.property and a.kind == b.kind


class StyleHistory:
    def __init__(
        self,
        max_size: Optional[int] = None,
        batch_delay_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = config.HISTORY_MAX_SIZE if max_size is None else max_size
        if batch_delay_ms is None:
            batch_delay_ms = config.HISTORY_BATCH_DELAY_MS
        self.batch_delay = batch_delay_ms / 1000.0
        self._clock = clock
        self._state = HistoryState()
        self._pending: ChangeBatch = []
        self._deadline: Optional[float] = None

    # --- queries ---

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    @property
    def can_undo(self) -> bool:
        self.poll()
        return bool(self._pending or self._state.past or self._state.present is not None)

    @property
    def can_redo(self) -> bool:
        self.poll()
        return bool(self._state.future)

    def get_history(self) -> HistoryState:
        self.poll()
        return HistoryState(
            past=list(self._state.past),
            present=self._state.present,
            future=list(self._state.future),
        )

    # --- recording ---

    def push_change(self, change: StyleChange):
        """Record one change; repeated edits of the same target coalesce"""
        self.poll()
        existing = next((c for c in self._pending if _same_target(c, change)), None)
        if existing is not None:
            existing.new_value = change.new_value
            existing.timestamp = change.timestamp
        else:
            self._pending.append(change.model_copy())
        self._deadline = self._clock() + self.batch_delay

    def batch_changes(self, changes: List[StyleChange]):
        """Commit several changes as one undo step right away"""
        self.flush()
        if not changes:
            return
        self._commit([change.model_copy() for change in changes])

    def poll(self) -> bool:
        """Commit the pending batch if its deadline has passed"""
        if self._deadline is not None and self._clock() >= self._deadline:
            return self.flush()
        return False

    def flush(self) -> bool:
        """Commit the pending batch now, whatever the deadline"""
        self._deadline = None
        if not self._pending:
            return False
        batch, self._pending = self._pending, []
        self._commit(batch)
        return True

    def _commit(self, batch: ChangeBatch):
        state = self._state
        if state.present is not None:
            state.past.append(state.present)
        # past plus present never exceed max_size
        while state.past and len(state.past) + 1 > self.max_size:
            state.past.pop(0)
        state.present = batch
        state.future.clear()
        logger.debug(f"Committed style batch of {len(batch)} change(s)")

    # --- navigation ---

    def peek_undo(self) -> Optional[ChangeBatch]:
        """The batch undo() would return, without moving"""
        self.flush()
        return self._state.present

    def peek_redo(self) -> Optional[ChangeBatch]:
        self.flush()
        return self._state.future[0] if self._state.future else None

    def undo(self) -> Optional[ChangeBatch]:
        """Step back; returns the batch whose old values must be re-applied"""
        self.flush()
        state = self._state
        if state.present is None:
            return None

        undone = state.present
        state.future.insert(0, undone)
        del state.future[self.max_size:]
        state.present = state.past.pop() if state.past else None
        logger.debug(f"Undo of {len(undone)} change(s)")
        return undone

    def redo(self) -> Optional[ChangeBatch]:
        """Step forward; returns the batch whose new values must be re-applied"""
        self.flush()
        state = self._state
        if not state.future:
            return None

        redone = state.future.pop(0)
        if state.present is not None:
            state.past.append(state.present)
            while state.past and len(state.past) + 1 > self.max_size:
                state.past.pop(0)
        state.present = redone
        logger.debug(f"Redo of {len(redone)} change(s)")
        return redone

    def clear(self):
        self._state = HistoryState()
        self._pending = []
        self._deadline = None
