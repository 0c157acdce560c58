"""SQLModel-backed implementation of the ItemStore protocol."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import Session, SQLModel, create_engine

from library_ranker.models import ComparisonRecord, LibraryItem, SystemState

from .base import ItemUpdate
from .history_repository import HistoryRepository, clear_history, stage_history_record
from .item_repository import ItemRepository, apply_item_updates
from .repository import AsyncRepository
from .state_repository import StateRepository, stage_comparison_count, stage_system_state

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


def create_store_engine(database_url: str) -> Engine:
    """Create an engine suited to the backend in ``database_url``.

    In-memory SQLite shares one connection across worker threads; every other
    backend opens a connection per session.
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(database_url, connect_args=connect_args, poolclass=NullPool)
    # Use NullPool to avoid connection pooling issues on Windows
    return create_engine(database_url, poolclass=NullPool)


class DBStore(AsyncRepository):
    """Unified persistence layer over items, history and system state.

    Single-table operations delegate to the repositories; the multi-table
    units (``commit_comparison``, ``reset_user``) run in one transaction.
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None) -> None:
        """Initialize the store and create tables.

        Args:
            database_url: SQLAlchemy URL (e.g. ``duckdb:///ranker.duckdb``).
            engine: Pre-built engine; takes precedence over ``database_url``.
        """
        if engine is None:
            if database_url is None:
                msg = "Either database_url or engine is required"
                raise ValueError(msg)
            engine = create_store_engine(database_url)
        super().__init__(engine)
        SQLModel.metadata.create_all(engine)
        self.items = ItemRepository(engine)
        self.history = HistoryRepository(engine)
        self.states = StateRepository(engine)
        logger.info("store_init", url=str(engine.url))

    # ==================== Items ====================

    async def list_items(self, user_id: str, category: str | None = None) -> list[LibraryItem]:
        return await self.items.list_items(user_id, category)

    async def get_item(self, user_id: str, item_id: str) -> LibraryItem:
        return await self.items.get_item(user_id, item_id)

    async def add_item(self, item: LibraryItem) -> LibraryItem:
        return await self.items.add_item(item)

    async def batch_update_items(self, user_id: str, updates: Sequence[ItemUpdate]) -> None:
        await self.items.batch_update_items(user_id, updates)

    # ==================== History ====================

    async def append_history(self, record: ComparisonRecord) -> ComparisonRecord:
        return await self.history.append_history(record)

    async def list_history(
        self,
        user_id: str,
        limit: int | None = None,
        most_recent_first: bool = True,
    ) -> list[ComparisonRecord]:
        return await self.history.list_history(user_id, limit, most_recent_first)

    async def delete_history(self, user_id: str, record_ids: Sequence[str]) -> int:
        return await self.history.delete_history(user_id, record_ids)

    # ==================== System state ====================

    async def get_system_state(self, scope: str) -> SystemState:
        return await self.states.get_system_state(scope)

    async def put_system_state(self, state: SystemState) -> None:
        await self.states.put_system_state(state)

    # ==================== Atomic units ====================

    async def commit_comparison(
        self,
        user_id: str,
        updates: Sequence[ItemUpdate],
        scope: str,
        record: ComparisonRecord,
    ) -> None:
        def _commit(session: Session) -> None:
            stage_comparison_count(session, scope)
            apply_item_updates(session, user_id, updates)
            stage_history_record(session, record)

        await self._run_transaction("commit_comparison", _commit)

    async def reset_user(
        self,
        user_id: str,
        updates: Sequence[ItemUpdate],
        state: SystemState,
    ) -> None:
        def _reset(session: Session) -> None:
            apply_item_updates(session, user_id, updates)
            stage_system_state(session, state)
            removed = clear_history(session, user_id)
            logger.debug("history_cleared", user_id=user_id, records=removed)

        await self._run_transaction("reset_user", _reset)

    # ==================== Lifecycle ====================

    async def close(self) -> None:
        """Dispose of the database engine."""
        self._engine.dispose()
