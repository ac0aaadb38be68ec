"""
Sampling Events

Every host notification the core reacts to is a typed event. Events are
posted to a single EventBus and handled one at a time by its consumer
task, so handlers never interleave: read-check-increment of the daily
count and clear-then-create of the notification session are atomic with
respect to every other event.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from ..host.state_store import StateChange

logger = logging.getLogger(__name__)


# =============================================================================
# EVENT TYPES
# =============================================================================

@dataclass(frozen=True)
class TriggerElement:
    """The browser element the participant made a decision about."""
    name: str


@dataclass(frozen=True)
class Installed:
    pass


@dataclass(frozen=True)
class Startup:
    pass


@dataclass(frozen=True)
class AlarmFired:
    name: str
    timer_id: Optional[int] = None


@dataclass(frozen=True)
class DecisionMade:
    element: TriggerElement
    decision: str


@dataclass(frozen=True)
class NotificationClicked:
    tag: str


@dataclass(frozen=True)
class NotificationButtonClicked:
    tag: str
    button_index: int = 0


@dataclass(frozen=True)
class StateChanged:
    change: StateChange


@dataclass(frozen=True)
class SurveyCompleted:
    survey_type: str
    responses: List[Tuple[str, str]] = field(default_factory=list)
    date_taken: Optional[datetime] = None


@dataclass(frozen=True)
class SubmissionSucceeded:
    entry_id: str
    body: Optional[str] = None


@dataclass(frozen=True)
class SubmissionFailed:
    entry_id: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class DrainPending:
    pass


Handler = Callable[[Any], Awaitable[Any]]


# =============================================================================
# EVENT BUS
# =============================================================================

class EventBus:
    """
    Single-consumer event queue.

    post() is fire-and-forget (handler errors are logged); dispatch()
    waits for the handler and returns its result or raises its error.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Tuple[Any, Optional[asyncio.Future]]]" = asyncio.Queue()
        self._handlers: Dict[Type, Handler] = {}
        self._task: Optional[asyncio.Task] = None

    def register(self, event_type: Type, handler: Handler) -> None:
        if event_type in self._handlers:
            raise ValueError(f"Handler already registered for {event_type.__name__}")
        self._handlers[event_type] = handler

    def post(self, event: Any) -> None:
        self._queue.put_nowait((event, None))

    async def dispatch(self, event: Any) -> Any:
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((event, future))
        return await future

    async def join(self) -> None:
        """Wait until every queued event (including ones handlers post) is handled."""
        await self._queue.join()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            event, future = await self._queue.get()
            try:
                await self._handle(event, future)
            finally:
                self._queue.task_done()

    async def _handle(self, event: Any, future: Optional[asyncio.Future]) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"No handler for event {type(event).__name__}")
            if future is not None and not future.done():
                future.set_result(None)
            return
        try:
            result = await handler(event)
        except Exception as e:
            if future is not None and not future.done():
                future.set_exception(e)
            else:
                logger.exception(f"Handler for {type(event).__name__} failed: {e}")
            return
        if future is not None and not future.done():
            future.set_result(result)
