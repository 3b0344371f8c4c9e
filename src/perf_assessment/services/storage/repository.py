"""Run SQLModel session work off the event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from sqlmodel import Session

if TYPE_CHECKING:
    from sqlalchemy import Engine

T = TypeVar("T")


class AsyncRepository:
    """Base for repositories whose async methods wrap sync SQLModel sessions."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _session(self) -> Session:
        # Records are handed back to callers after the session closes.
        return Session(self._engine, expire_on_commit=False)

    async def _read(self, fn: Callable[[Session], T]) -> T:
        """Run a query on a worker thread."""

        def _run() -> T:
            with self._session() as session:
                return fn(session)

        return await asyncio.to_thread(_run)

    async def _write(self, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` in a transaction on a worker thread.

        The transaction commits when ``fn`` returns and rolls back if it raises.
        """

        def _run() -> T:
            with self._session() as session, session.begin():
                return fn(session)

        return await asyncio.to_thread(_run)
