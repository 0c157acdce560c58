"""Store protocol for items, comparison history and system state."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from library_ranker.models import ComparisonRecord, LibraryItem, SystemState


@dataclass
class ItemUpdate:
    """Field assignments for one item in an atomic batch.

    Attributes:
        item_id: Item identifier.
        fields: Attribute name to new value.
    """

    item_id: str
    fields: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ItemStore(Protocol):
    """Protocol for the persistence collaborator.

    Implementations must apply ``batch_update_items``, ``commit_comparison``
    and ``reset_user`` atomically: either every change lands or none does.
    Failures other than missing records surface as ``StoreFailureError``.
    """

    async def list_items(self, user_id: str, category: str | None = None) -> list[LibraryItem]:
        """List a user's items, optionally restricted to one media type."""
        ...

    async def get_item(self, user_id: str, item_id: str) -> LibraryItem:
        """Get one item.

        Raises:
            NotFoundError: If the user has no such item.
        """
        ...

    async def add_item(self, item: LibraryItem) -> LibraryItem:
        """Insert a new item."""
        ...

    async def batch_update_items(self, user_id: str, updates: Sequence[ItemUpdate]) -> None:
        """Apply field updates to several items atomically.

        Raises:
            NotFoundError: If any item is missing; nothing is written.
        """
        ...

    async def append_history(self, record: ComparisonRecord) -> ComparisonRecord:
        """Append a comparison record, assigning its sequence number (seq_no)."""
        ...

    async def list_history(
        self,
        user_id: str,
        limit: int | None = None,
        most_recent_first: bool = True,
    ) -> list[ComparisonRecord]:
        """List a user's comparison records ordered by seq_no."""
        ...

    async def delete_history(self, user_id: str, record_ids: Sequence[str]) -> int:
        """Delete comparison records; returns how many were removed."""
        ...

    async def get_system_state(self, scope: str) -> SystemState:
        """Get the system state for a scope.

        Raises:
            SystemNotInitializedError: If the scope has no state.
        """
        ...

    async def put_system_state(self, state: SystemState) -> None:
        """Create or replace the system state for ``state.scope``."""
        ...

    async def commit_comparison(
        self,
        user_id: str,
        updates: Sequence[ItemUpdate],
        scope: str,
        record: ComparisonRecord,
    ) -> None:
        """Write both items, bump the scope's comparison counter and append the record.

        The counter is incremented against the stored value, so concurrent
        comparisons sharing a scope never overwrite each other's increments.

        Raises:
            NotFoundError: If an item is missing; nothing is written.
            SystemNotInitializedError: If the scope has no state; nothing is written.
        """
        ...

    async def reset_user(
        self,
        user_id: str,
        updates: Sequence[ItemUpdate],
        state: SystemState,
    ) -> None:
        """Write item resets and state, and clear the user's history, as one unit."""
        ...

    async def close(self) -> None:
        """Release any resources."""
        ...
