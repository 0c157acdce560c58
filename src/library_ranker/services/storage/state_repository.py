"""Database persistence for system state."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlmodel import Session, col

from library_ranker.core.errors import SystemNotInitializedError
from library_ranker.models import SystemState, utc_now

from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine


def stage_system_state(session: Session, state: SystemState) -> SystemState:
    """Insert or overwrite the state row for ``state.scope``."""
    return session.merge(state)


def stage_comparison_count(session: Session, scope: str) -> None:
    """Increment the scope's counter in SQL so concurrent writers never lose updates."""
    if session.get(SystemState, scope) is None:
        raise SystemNotInitializedError(scope)
    statement = (
        update(SystemState)
        .where(col(SystemState.scope) == scope)
        .values(
            total_comparisons=col(SystemState.total_comparisons) + 1,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    session.execute(statement)


class StateRepository(AsyncRepository):
    """Persist and query per-scope system state."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    async def get_system_state(self, scope: str) -> SystemState:
        """Get state or raise SystemNotInitializedError."""

        def _get(session: Session) -> SystemState | None:
            return session.get(SystemState, scope)

        state = await self._run_session("get_system_state", _get)
        if state is None:
            raise SystemNotInitializedError(scope)
        return state

    async def put_system_state(self, state: SystemState) -> None:
        """Create or replace state."""

        def _put(session: Session) -> None:
            stage_system_state(session, state)

        await self._run_transaction("put_system_state", _put)
