"""
Throttle Controller

Caps the number of survey prompts per day. The day is a rolling window
anchored to install time: the first reset fires COUNT_RESET_DELAY minutes
after install and then every COUNT_RESET_PERIOD minutes, independent of
calendar midnight.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from ...models.db_models import StateKey
from ..host.state_store import StateStore

logger = logging.getLogger(__name__)


def may_show(daily_count: int, max_per_day: int) -> bool:
    return daily_count < max_per_day


def next_reset_schedule(
    anchor: datetime,
    now: datetime,
    delay_minutes: float,
    period_minutes: float,
) -> Tuple[float, Optional[datetime]]:
    """
    Where now falls on the anchor + delay + k * period grid.

    Returns (minutes until the next reset, most recent reset time that is
    already due or None if the first reset has not come yet).
    """
    first = anchor + timedelta(minutes=delay_minutes)
    if now < first:
        return (first - now).total_seconds() / 60.0, None

    period = timedelta(minutes=period_minutes)
    elapsed_periods = (now - first) // period
    last_due = first + elapsed_periods * period
    next_due = last_due + period
    return (next_due - now).total_seconds() / 60.0, last_due


class DailyQuota:
    """
    Persisted DailySurveyCount with an atomic check-and-increment.

    The count only ever goes up through try_acquire() and back to zero
    through reset().
    """

    def __init__(self, store: StateStore, max_per_day: int):
        self.store = store
        self.max_per_day = max_per_day
        self._lock = asyncio.Lock()

    async def count(self) -> int:
        return int(await self.store.get(StateKey.SURVEYS_SHOWN_TODAY.value, 0))

    async def try_acquire(self) -> bool:
        """Claim one prompt for today. False when the cap is reached."""
        async with self._lock:
            shown_today = await self.count()
            if not may_show(shown_today, self.max_per_day):
                logger.info(f"Daily survey cap reached ({shown_today}/{self.max_per_day}); prompt suppressed")
                return False
            await self.store.set(StateKey.SURVEYS_SHOWN_TODAY.value, shown_today + 1)
            return True

    async def reset(self) -> None:
        async with self._lock:
            await self.store.set(StateKey.SURVEYS_SHOWN_TODAY.value, 0)
        logger.info("Daily survey count reset")
