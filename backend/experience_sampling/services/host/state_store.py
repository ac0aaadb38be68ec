"""
Durable State Store

Key-value persistence that survives process restarts. Values are JSON
documents stored in the state_entries table. Reads and writes run on a
worker thread so the event loop is never blocked by the database.

Listeners registered with on_change() are called on the event loop after
every write that changes a value, with a StateChange(key, old, new).
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from ...models.db_models import StateEntryDB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateChange:
    """A single persisted value transition."""
    key: str
    old_value: Any
    new_value: Any


StateListener = Callable[[StateChange], None]


class StateStore:
    """
    Async facade over the state_entries table.

    get()/set() are awaited by callers; the blocking SQLAlchemy work is
    pushed to asyncio.to_thread.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._listeners: List[StateListener] = []

    # -------------------------------------------------------------------------
    # READS / WRITES
    # -------------------------------------------------------------------------

    async def get(self, key: str, default: Any = None) -> Any:
        value = await asyncio.to_thread(self._read, str(key))
        return default if value is None else value

    async def get_many(self, *keys: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self._read_many, [str(k) for k in keys])

    async def set(self, key: str, value: Any) -> None:
        key = str(key)
        old_value = await asyncio.to_thread(self._write, key, value)
        if old_value != value:
            self._notify(StateChange(key=key, old_value=old_value, new_value=value))

    async def set_default(self, key: str, value: Any) -> Any:
        """Write value only when key is absent; return the stored value."""
        current = await self.get(key)
        if current is not None:
            return current
        await self.set(key, value)
        return value

    # -------------------------------------------------------------------------
    # CHANGE NOTIFICATION
    # -------------------------------------------------------------------------

    def on_change(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that deregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    # -------------------------------------------------------------------------
    # BLOCKING DB HELPERS
    # -------------------------------------------------------------------------

    def _read(self, key: str) -> Any:
        session: Session = self._session_factory()
        try:
            entry = session.get(StateEntryDB, key)
            return entry.value if entry else None
        finally:
            session.close()

    def _read_many(self, keys: List[str]) -> Dict[str, Any]:
        session: Session = self._session_factory()
        try:
            rows = session.query(StateEntryDB).filter(StateEntryDB.key.in_(keys)).all()
            found = {row.key: row.value for row in rows}
            return {k: found.get(k) for k in keys}
        finally:
            session.close()

    def _write(self, key: str, value: Any) -> Optional[Any]:
        session: Session = self._session_factory()
        try:
            entry = session.get(StateEntryDB, key)
            old_value = entry.value if entry else None
            if entry is None:
                session.add(StateEntryDB(key=key, value=value, updated_at=datetime.utcnow()))
            else:
                entry.value = value
                entry.updated_at = datetime.utcnow()
            session.commit()
            logger.debug(f"State {key!r}: {old_value!r} -> {value!r}")
            return old_value
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
