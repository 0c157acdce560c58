"""In-process store for tests, scripts and embedding without a database."""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Sequence
from typing import TypeVar

import structlog
from sqlmodel import SQLModel

from library_ranker.core.errors import NotFoundError, SystemNotInitializedError
from library_ranker.models import ComparisonRecord, LibraryItem, SystemState, utc_now

from .base import ItemUpdate

logger = structlog.get_logger()

M = TypeVar("M", bound=SQLModel)


def _clone(model: M) -> M:
    """Detached deep copy so callers never alias stored rows."""
    return type(model)(**copy.deepcopy(model.model_dump()))


class MemoryStore:
    """Dictionary-backed implementation of the ItemStore protocol.

    Mutations are serialized with an ``asyncio.Lock`` and every batch is
    validated before anything is written.
    """

    def __init__(self) -> None:
        self._items: dict[str, LibraryItem] = {}
        self._history: dict[str, list[ComparisonRecord]] = {}
        self._states: dict[str, SystemState] = {}
        self._sequences: dict[str, int] = {}
        self._lock = asyncio.Lock()

    # ==================== Items ====================

    async def list_items(self, user_id: str, category: str | None = None) -> list[LibraryItem]:
        return [
            _clone(item)
            for item in self._items.values()
            if item.user_id == user_id and (category is None or item.media_type == category)
        ]

    async def get_item(self, user_id: str, item_id: str) -> LibraryItem:
        item = self._items.get(item_id)
        if item is None or item.user_id != user_id:
            raise NotFoundError("Item", item_id)
        return _clone(item)

    async def add_item(self, item: LibraryItem) -> LibraryItem:
        async with self._lock:
            self._items[item.id] = _clone(item)
        logger.debug("item_added", item_id=item.id, user_id=item.user_id)
        return _clone(item)

    async def batch_update_items(self, user_id: str, updates: Sequence[ItemUpdate]) -> None:
        async with self._lock:
            self._apply_updates(user_id, updates)

    def _apply_updates(self, user_id: str, updates: Sequence[ItemUpdate]) -> None:
        for update in updates:
            item = self._items.get(update.item_id)
            if item is None or item.user_id != user_id:
                raise NotFoundError("Item", update.item_id)
        for update in updates:
            item = self._items[update.item_id]
            for key, value in update.fields.items():
                setattr(item, key, copy.deepcopy(value))

    # ==================== History ====================

    async def append_history(self, record: ComparisonRecord) -> ComparisonRecord:
        async with self._lock:
            return self._append_record(record)

    def _append_record(self, record: ComparisonRecord) -> ComparisonRecord:
        sequence = self._sequences.get(record.user_id, 0) + 1
        self._sequences[record.user_id] = sequence
        stored = _clone(record)
        stored.seq_no = sequence
        self._history.setdefault(record.user_id, []).append(stored)
        return _clone(stored)

    async def list_history(
        self,
        user_id: str,
        limit: int | None = None,
        most_recent_first: bool = True,
    ) -> list[ComparisonRecord]:
        records = sorted(
            self._history.get(user_id, []),
            key=lambda r: r.seq_no,
            reverse=most_recent_first,
        )
        if limit is not None:
            records = records[:limit]
        return [_clone(r) for r in records]

    async def delete_history(self, user_id: str, record_ids: Sequence[str]) -> int:
        doomed = set(record_ids)
        async with self._lock:
            records = self._history.get(user_id, [])
            kept = [r for r in records if r.id not in doomed]
            self._history[user_id] = kept
            return len(records) - len(kept)

    # ==================== System state ====================

    async def get_system_state(self, scope: str) -> SystemState:
        state = self._states.get(scope)
        if state is None:
            raise SystemNotInitializedError(scope)
        return _clone(state)

    async def put_system_state(self, state: SystemState) -> None:
        async with self._lock:
            self._states[state.scope] = _clone(state)

    # ==================== Atomic units ====================

    async def commit_comparison(
        self,
        user_id: str,
        updates: Sequence[ItemUpdate],
        scope: str,
        record: ComparisonRecord,
    ) -> None:
        async with self._lock:
            state = self._states.get(scope)
            if state is None:
                raise SystemNotInitializedError(scope)
            self._apply_updates(user_id, updates)
            state.total_comparisons += 1
            state.updated_at = utc_now()
            self._append_record(record)

    async def reset_user(
        self,
        user_id: str,
        updates: Sequence[ItemUpdate],
        state: SystemState,
    ) -> None:
        async with self._lock:
            self._apply_updates(user_id, updates)
            self._states[state.scope] = _clone(state)
            self._history[user_id] = []

    async def close(self) -> None:
        """Nothing to release."""
