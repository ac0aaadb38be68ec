"""
Pending Response Queue

Persisted list of surveys not yet confirmed delivered. Every completed
survey is queued before it is sent; a 204 removes it, anything else
leaves it for retry with exponential backoff until the attempt limit.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set
from uuid import uuid4

from ...config import Settings
from ...models.db_models import StateKey
from ...models.survey import Survey
from ..host.state_store import StateStore

logger = logging.getLogger(__name__)

KEY = StateKey.PENDING_RESPONSES.value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backoff_minutes(attempts: int, base_minutes: float) -> float:
    """Delay before the next try after `attempts` failures (1, 2, 4, ... x base)."""
    return base_minutes * (2 ** max(0, attempts - 1))


class PendingResponseQueue:
    def __init__(self, store: StateStore, settings: Settings, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.max_attempts = settings.retry_max_attempts
        self.backoff_base_minutes = settings.retry_backoff_base_minutes
        self._clock = clock
        self._lock = asyncio.Lock()
        self._in_flight: Set[str] = set()

    async def entries(self) -> List[Dict[str, Any]]:
        return list(await self.store.get(KEY, []))

    async def enqueue(self, survey: Survey) -> str:
        now = self._clock()
        entry = {
            "id": uuid4().hex,
            "survey": survey.model_dump(mode="json"),
            "attempts": 0,
            "last_status": None,
            "queued_at": now.isoformat(),
            "next_attempt_at": now.isoformat(),
        }
        async with self._lock:
            entries = await self.entries()
            entries.append(entry)
            await self.store.set(KEY, entries)
        return entry["id"]

    async def dequeue(self, entry_id: str) -> bool:
        self._in_flight.discard(entry_id)
        async with self._lock:
            entries = await self.entries()
            remaining = [e for e in entries if e["id"] != entry_id]
            if len(remaining) == len(entries):
                return False
            await self.store.set(KEY, remaining)
        return True

    async def record_failure(self, entry_id: str, status_code: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Count a failed attempt. Returns the updated entry, or None when the
        entry is gone (unknown id, or dropped after max attempts).
        """
        self._in_flight.discard(entry_id)
        async with self._lock:
            entries = await self.entries()
            for index, entry in enumerate(entries):
                if entry["id"] == entry_id:
                    break
            else:
                return None

            attempts = int(entry.get("attempts", 0)) + 1
            if attempts >= self.max_attempts:
                del entries[index]
                await self.store.set(KEY, entries)
                logger.error(
                    f"Abandoning pending response {entry_id} after {attempts} attempts "
                    f"(last status {status_code})"
                )
                return None

            updated = dict(entry)
            updated["attempts"] = attempts
            updated["last_status"] = status_code
            delay = backoff_minutes(attempts, self.backoff_base_minutes)
            updated["next_attempt_at"] = (self._clock() + timedelta(minutes=delay)).isoformat()
            entries[index] = updated
            await self.store.set(KEY, entries)
        logger.warning(f"Pending response {entry_id} failed (status {status_code}); retry in {delay} min")
        return updated

    async def due(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Entries whose next attempt time has passed and that are not in flight."""
        now = now or self._clock()
        ready = []
        for entry in await self.entries():
            if entry["id"] in self._in_flight:
                continue
            if datetime.fromisoformat(entry["next_attempt_at"]) <= now:
                ready.append(entry)
        return ready

    def mark_in_flight(self, entry_id: str) -> None:
        self._in_flight.add(entry_id)

    def is_in_flight(self, entry_id: str) -> bool:
        return entry_id in self._in_flight

    @staticmethod
    def survey_of(entry: Dict[str, Any]) -> Survey:
        return Survey.model_validate(entry["survey"])
