"""
Sampling Coordinator

Owns the components and routes each event kind to exactly one handler.
All handlers run on the EventBus consumer, one at a time.

Flow:
    DecisionMade -> DailyQuota + readiness -> NotificationLifecycleManager
    NotificationClicked -> SurveyDispatcher -> (external survey UI)
    SurveyCompleted -> PendingResponseQueue -> SubmissionPipeline
"""
import logging
import platform
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from ...config import COUNT_RESET_ALARM, NOTIFICATION_ALARM, PENDING_RETRY_ALARM
from ...models.db_models import ConsentStatus, StateKey
from ...models.survey import Response, Survey
from ..delivery import PendingResponseQueue, SubmissionPipeline
from .context import SamplingContext
from .eligibility_gate import EligibilityGate
from .events import (
    AlarmFired,
    DecisionMade,
    DrainPending,
    Installed,
    NotificationButtonClicked,
    NotificationClicked,
    StateChanged,
    Startup,
    SubmissionFailed,
    SubmissionSucceeded,
    SurveyCompleted,
)
from .notification_lifecycle import NotificationLifecycleManager
from .survey_dispatcher import SurveyDispatcher
from .throttle import DailyQuota, next_reset_schedule

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Coordinator:
    def __init__(self, context: SamplingContext, pipeline: Optional[SubmissionPipeline] = None):
        self.ctx = context
        self.bus = context.bus
        settings = context.settings

        self.gate = EligibilityGate(context)
        self.quota = DailyQuota(context.store, settings.max_surveys_per_day)
        self.dispatcher = SurveyDispatcher(context)
        self.lifecycle = NotificationLifecycleManager(context, self.quota, self.dispatcher)
        self.pipeline = pipeline or SubmissionPipeline(settings)
        self.pending = PendingResponseQueue(context.store, settings)

        handlers = {
            Installed: self.on_installed,
            Startup: self.on_startup,
            AlarmFired: self.on_alarm,
            DecisionMade: self.on_decision,
            NotificationClicked: self.on_notification_clicked,
            NotificationButtonClicked: self.on_notification_clicked,
            StateChanged: self.on_state_changed,
            SurveyCompleted: self.on_survey_completed,
            SubmissionSucceeded: self.on_submission_succeeded,
            SubmissionFailed: self.on_submission_failed,
            DrainPending: self.on_drain_pending,
        }
        for event_type, handler in handlers.items():
            self.bus.register(event_type, self._guarded(handler))

        context.timers.set_fire_callback(
            lambda name, timer_id: self.bus.post(AlarmFired(name, timer_id))
        )
        context.host.uninstaller.add_teardown(self._teardown)

    async def start(self) -> None:
        self.bus.start()

    async def stop(self) -> None:
        self.ctx.timers.cancel_all()
        await self.pipeline.drain()
        await self.bus.stop()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def on_installed(self, event: Installed) -> Any:
        """First run: seed persisted state and anchor the daily reset window."""
        store = self.ctx.store
        now = _utcnow()

        await store.set_default(StateKey.PENDING_RESPONSES.value, [])
        await store.set_default(StateKey.INSTALLED_AT.value, now.isoformat())
        await self._load_identity()

        await store.set(StateKey.SURVEYS_SHOWN_TODAY.value, 0)
        await store.set(StateKey.COUNT_RESET_ANCHOR.value, now.isoformat())
        await store.set(StateKey.LAST_COUNT_RESET.value, now.isoformat())
        self.ctx.timers.schedule_recurring(
            COUNT_RESET_ALARM,
            self.ctx.settings.count_reset_delay_minutes,
            self.ctx.settings.count_reset_period_minutes,
        )
        self._arm_retry()
        logger.info(f"Installed for participant {self.ctx.participant_id} on {self.ctx.operating_system}")
        return await self.gate.check()

    async def on_startup(self, event: Startup) -> Any:
        """Every later process start: re-derive readiness, never trust it."""
        self.ctx.revoke_ready()
        await self._load_identity()
        await self._restore_count_reset()
        self._arm_retry()
        action = await self.gate.check()
        if not self.ctx.uninstalled:
            await self._drain_pending()
        return action

    async def _load_identity(self) -> None:
        store = self.ctx.store
        self.ctx.participant_id = await store.set_default(StateKey.PARTICIPANT_ID.value, uuid4().hex)
        self.ctx.operating_system = platform.system()
        await store.set(StateKey.OPERATING_SYSTEM.value, self.ctx.operating_system)

    async def _restore_count_reset(self) -> None:
        store = self.ctx.store
        settings = self.ctx.settings
        now = _utcnow()

        anchor_raw = await store.get(StateKey.COUNT_RESET_ANCHOR.value)
        if anchor_raw is None:
            anchor_raw = now.isoformat()
            await store.set(StateKey.COUNT_RESET_ANCHOR.value, anchor_raw)
        anchor = datetime.fromisoformat(anchor_raw)

        delay, last_due = next_reset_schedule(
            anchor, now, settings.count_reset_delay_minutes, settings.count_reset_period_minutes
        )
        if last_due is not None:
            last_reset_raw = await store.get(StateKey.LAST_COUNT_RESET.value)
            last_reset = datetime.fromisoformat(last_reset_raw) if last_reset_raw else None
            if last_reset is None or last_reset < last_due:
                logger.info("Daily reset was due while stopped; resetting now")
                await self._reset_count()

        self.ctx.timers.schedule_recurring(COUNT_RESET_ALARM, delay, settings.count_reset_period_minutes)

    def _arm_retry(self) -> None:
        period = self.ctx.settings.retry_period_minutes
        self.ctx.timers.schedule_recurring(PENDING_RETRY_ALARM, period, period)

    async def _reset_count(self) -> None:
        await self.quota.reset()
        await self.ctx.store.set(StateKey.LAST_COUNT_RESET.value, _utcnow().isoformat())

    # =========================================================================
    # ALARMS / PROMPTS
    # =========================================================================

    async def on_alarm(self, event: AlarmFired) -> Any:
        if event.name == NOTIFICATION_ALARM:
            return await self.lifecycle.on_timeout(event.timer_id)
        if event.name == COUNT_RESET_ALARM:
            await self._reset_count()
            return True
        if event.name == PENDING_RETRY_ALARM:
            return await self._drain_pending()
        logger.warning(f"Unknown alarm {event.name}")
        return None

    async def on_decision(self, event: DecisionMade):
        return await self.lifecycle.on_decision(event.element, event.decision)

    async def on_notification_clicked(self, event) -> bool:
        return await self.lifecycle.on_clicked(event.tag)

    async def on_state_changed(self, event: StateChanged):
        return await self.gate.on_state_changed(event.change)

    # =========================================================================
    # SURVEY DELIVERY
    # =========================================================================

    async def on_survey_completed(self, event: SurveyCompleted) -> Optional[str]:
        """Queue the survey, then send it. Returns the pending entry id."""
        consent = await self.ctx.store.get(StateKey.CONSENT.value)
        if consent != ConsentStatus.GRANTED.value:
            logger.warning(f"Survey {event.survey_type} dropped; consent is {consent!r}")
            return None

        survey = Survey(
            type=event.survey_type,
            participant_id=self.ctx.participant_id,
            date_taken=event.date_taken or _utcnow(),
            responses=[Response(question=q, answer=a) for q, a in event.responses],
        )
        entry_id = await self.pending.enqueue(survey)
        self._send(entry_id, survey)
        return entry_id

    async def on_submission_succeeded(self, event: SubmissionSucceeded) -> bool:
        return await self.pending.dequeue(event.entry_id)

    async def on_submission_failed(self, event: SubmissionFailed) -> Optional[Dict[str, Any]]:
        return await self.pending.record_failure(event.entry_id, event.status_code)

    async def on_drain_pending(self, event: DrainPending) -> int:
        return await self._drain_pending()

    async def _drain_pending(self) -> int:
        sent = 0
        for entry in await self.pending.due():
            self._send(entry["id"], self.pending.survey_of(entry))
            sent += 1
        if sent:
            logger.info(f"Retrying {sent} pending response(s)")
        return sent

    def _send(self, entry_id: str, survey: Survey) -> None:
        self.pending.mark_in_flight(entry_id)
        bus = self.bus

        def on_success(body: Optional[str] = None) -> None:
            bus.post(SubmissionSucceeded(entry_id, body))

        def on_error(status_code: Optional[int] = None) -> None:
            bus.post(SubmissionFailed(entry_id, status_code))

        self.pipeline.submit(survey, on_success, on_error)

    # =========================================================================

    def _guarded(self, handler):
        async def run(event):
            if self.ctx.uninstalled:
                logger.debug(f"{type(event).__name__} ignored; uninstalled")
                return None
            return await handler(event)
        return run

    def _teardown(self) -> None:
        self.lifecycle.reset()
        self.gate.reset()
        self.ctx.timers.cancel_all()
