"""Shared async repository helpers for SQLModel session work."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from library_ranker.core.errors import StoreFailureError

if TYPE_CHECKING:
    from sqlalchemy import Engine

T = TypeVar("T")


class AsyncRepository(Generic[T]):
    """Wrap sync SQLModel session work for async callers."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def _run_session(self, operation: str, fn: Callable[[Session], T]) -> T:
        """Run a read-only function inside a Session on a worker thread."""

        def _run() -> T:
            try:
                with Session(self._engine, expire_on_commit=False) as session:
                    return fn(session)
            except SQLAlchemyError as exc:
                raise StoreFailureError(operation, exc) from exc

        return await asyncio.to_thread(_run)

    async def _run_transaction(self, operation: str, fn: Callable[[Session], T]) -> T:
        """Run a function inside one transaction; commit on success, roll back otherwise."""

        def _run() -> T:
            with Session(self._engine, expire_on_commit=False) as session:
                try:
                    result = fn(session)
                    session.commit()
                except SQLAlchemyError as exc:
                    session.rollback()
                    raise StoreFailureError(operation, exc) from exc
                except Exception:
                    session.rollback()
                    raise
                return result

        return await asyncio.to_thread(_run)
