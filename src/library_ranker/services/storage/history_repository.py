"""Database persistence for the rolling comparison history."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlmodel import Session, col, func, select

from library_ranker.models import ComparisonRecord

from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine


def stage_history_record(session: Session, record: ComparisonRecord) -> ComparisonRecord:
    """Assign the next seq_no for the user and stage the record."""
    statement = select(func.max(ComparisonRecord.seq_no)).where(
        ComparisonRecord.user_id == record.user_id
    )
    current = session.exec(statement).one()
    record.seq_no = (current or 0) + 1
    session.add(record)
    return record


def clear_history(session: Session, user_id: str) -> int:
    """Stage deletion of every history record for a user."""
    statement = select(ComparisonRecord).where(ComparisonRecord.user_id == user_id)
    records = session.exec(statement).all()
    for record in records:
        session.delete(record)
    return len(records)


class HistoryRepository(AsyncRepository):
    """Persist and query comparison records."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    async def append_history(self, record: ComparisonRecord) -> ComparisonRecord:
        """Append a record to the user's history."""

        def _append(session: Session) -> ComparisonRecord:
            return stage_history_record(session, record)

        return await self._run_transaction("append_history", _append)

    async def list_history(
        self,
        user_id: str,
        limit: int | None = None,
        most_recent_first: bool = True,
    ) -> list[ComparisonRecord]:
        """List records ordered by seq_no."""

        def _list(session: Session) -> list[ComparisonRecord]:
            order = col(ComparisonRecord.seq_no)
            statement = (
                select(ComparisonRecord)
                .where(ComparisonRecord.user_id == user_id)
                .order_by(order.desc() if most_recent_first else order.asc())
            )
            if limit is not None:
                statement = statement.limit(limit)
            return list(session.exec(statement).all())

        return await self._run_session("list_history", _list)

    async def delete_history(self, user_id: str, record_ids: Sequence[str]) -> int:
        """Delete the given records; returns the number removed."""
        if not record_ids:
            return 0

        def _delete(session: Session) -> int:
            statement = select(ComparisonRecord).where(
                ComparisonRecord.user_id == user_id,
                col(ComparisonRecord.id).in_(list(record_ids)),
            )
            records = session.exec(statement).all()
            for record in records:
                session.delete(record)
            return len(records)

        return await self._run_transaction("delete_history", _delete)
