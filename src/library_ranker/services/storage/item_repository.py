"""Database persistence for library items."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlmodel import Session, col, select

from library_ranker.core.errors import NotFoundError
from library_ranker.models import LibraryItem

from .base import ItemUpdate
from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine


def apply_item_updates(session: Session, user_id: str, updates: Sequence[ItemUpdate]) -> None:
    """Stage field updates for several items; raise before staging if any is missing."""
    ids = [u.item_id for u in updates]
    statement = select(LibraryItem).where(
        LibraryItem.user_id == user_id,
        col(LibraryItem.id).in_(ids),
    )
    found = {item.id: item for item in session.exec(statement).all()}
    for item_id in ids:
        if item_id not in found:
            raise NotFoundError("Item", item_id)

    for update in updates:
        item = found[update.item_id]
        for key, value in update.fields.items():
            setattr(item, key, value)
        session.add(item)


class ItemRepository(AsyncRepository):
    """Persist and query library items."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    async def list_items(self, user_id: str, category: str | None = None) -> list[LibraryItem]:
        """List a user's items, optionally filtered by media type."""

        def _list(session: Session) -> list[LibraryItem]:
            statement = select(LibraryItem).where(LibraryItem.user_id == user_id)
            if category is not None:
                statement = statement.where(LibraryItem.media_type == category)
            return list(session.exec(statement).all())

        return await self._run_session("list_items", _list)

    async def get_item(self, user_id: str, item_id: str) -> LibraryItem:
        """Get one item or raise NotFoundError."""

        def _get(session: Session) -> LibraryItem | None:
            item = session.get(LibraryItem, item_id)
            if item is None or item.user_id != user_id:
                return None
            return item

        item = await self._run_session("get_item", _get)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    async def add_item(self, item: LibraryItem) -> LibraryItem:
        """Insert a new item."""

        def _add(session: Session) -> LibraryItem:
            session.add(item)
            return item

        return await self._run_transaction("add_item", _add)

    async def batch_update_items(self, user_id: str, updates: Sequence[ItemUpdate]) -> None:
        """Apply field updates to several items in one transaction."""

        def _update(session: Session) -> None:
            apply_item_updates(session, user_id, updates)

        await self._run_transaction("batch_update_items", _update)
