"""
Clock/Timer Service

One-shot and recurring named alarms on the running asyncio loop.
Every scheduled alarm gets a fresh timer_id; the fire callback receives
(name, timer_id) so a consumer can tell a stale firing from a live one.
Scheduling a name that is already armed replaces the previous alarm.
"""
import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

FireCallback = Callable[[str, int], None]


@dataclass
class _Alarm:
    name: str
    timer_id: int
    period_minutes: Optional[float]
    handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


class TimerService:
    """Named alarms measured in minutes."""

    def __init__(self, on_fire: Optional[FireCallback] = None, seconds_per_minute: float = 60.0):
        self._on_fire = on_fire
        self._seconds_per_minute = seconds_per_minute
        self._alarms: Dict[str, _Alarm] = {}
        self._ids = itertools.count(1)

    def set_fire_callback(self, on_fire: FireCallback) -> None:
        self._on_fire = on_fire

    def schedule_once(self, name: str, delay_minutes: float) -> int:
        return self._schedule(name, delay_minutes, None)

    def schedule_recurring(self, name: str, delay_minutes: float, period_minutes: float) -> int:
        if period_minutes <= 0:
            raise ValueError("period_minutes must be positive")
        return self._schedule(name, delay_minutes, period_minutes)

    def cancel(self, name: str) -> bool:
        alarm = self._alarms.pop(name, None)
        if alarm is None:
            return False
        if alarm.handle is not None:
            alarm.handle.cancel()
        logger.debug(f"Cancelled alarm {name} (#{alarm.timer_id})")
        return True

    def cancel_all(self) -> None:
        for name in list(self._alarms):
            self.cancel(name)

    def is_scheduled(self, name: str) -> bool:
        return name in self._alarms

    def current_id(self, name: str) -> Optional[int]:
        alarm = self._alarms.get(name)
        return alarm.timer_id if alarm else None

    # -------------------------------------------------------------------------

    def _schedule(self, name: str, delay_minutes: float, period_minutes: Optional[float]) -> int:
        self.cancel(name)
        alarm = _Alarm(name=name, timer_id=next(self._ids), period_minutes=period_minutes)
        self._alarms[name] = alarm
        self._arm(alarm, delay_minutes)
        logger.debug(
            f"Scheduled alarm {name} (#{alarm.timer_id}) in {delay_minutes} min"
            + (f", every {period_minutes} min" if period_minutes else "")
        )
        return alarm.timer_id

    def _arm(self, alarm: _Alarm, delay_minutes: float) -> None:
        loop = asyncio.get_running_loop()
        delay = max(0.0, delay_minutes) * self._seconds_per_minute
        alarm.handle = loop.call_later(delay, self._fire, alarm)

    def _fire(self, alarm: _Alarm) -> None:
        if self._alarms.get(alarm.name) is not alarm:
            return
        if alarm.period_minutes is None:
            del self._alarms[alarm.name]
        else:
            self._arm(alarm, alarm.period_minutes)
        if self._on_fire is not None:
            self._on_fire(alarm.name, alarm.timer_id)
