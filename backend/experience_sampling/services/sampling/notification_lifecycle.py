"""
Notification Lifecycle

State machine for the survey prompt notification.
At most one session is live; showing a new prompt supersedes the old one.
A click and the expiry timer race to resolve the same session: whichever
arrives first wins and the other observes no live session and does nothing.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ...config import NOTIFICATION_ALARM
from .context import SamplingContext
from .events import TriggerElement
from .survey_dispatcher import SurveyDispatcher
from .throttle import DailyQuota

logger = logging.getLogger(__name__)


class PromptState(str, Enum):
    IDLE = "IDLE"
    SHOWN = "SHOWN"
    RESOLVED_CLICKED = "RESOLVED_CLICKED"
    RESOLVED_TIMED_OUT = "RESOLVED_TIMED_OUT"


# =============================================================================
# STATE CONFIGURATION
# =============================================================================

STATE_CONFIG: Dict[PromptState, Dict[str, Any]] = {
    PromptState.IDLE: {
        "description": "No prompt on screen",
        "allowed_transitions": [PromptState.SHOWN],
    },
    PromptState.SHOWN: {
        "description": "Prompt on screen, expiry timer armed",
        "allowed_transitions": [
            PromptState.RESOLVED_CLICKED,
            PromptState.RESOLVED_TIMED_OUT,
            PromptState.IDLE,  # superseded by a newer prompt
        ],
    },
    PromptState.RESOLVED_CLICKED: {
        "description": "Participant clicked; survey dispatched",
        "allowed_transitions": [PromptState.IDLE],
    },
    PromptState.RESOLVED_TIMED_OUT: {
        "description": "Prompt expired without a click",
        "allowed_transitions": [PromptState.IDLE],
    },
}


def can_transition(from_state: PromptState, to_state: PromptState) -> Tuple[bool, str]:
    allowed = STATE_CONFIG.get(from_state, {}).get("allowed_transitions", [])
    if to_state in allowed:
        return True, "Transition allowed"
    return False, f"Cannot transition from {from_state.value} to {to_state.value}"


@dataclass
class NotificationSession:
    """One shown prompt. Discarded once it returns to IDLE."""
    tag: str
    element: TriggerElement
    decision: str
    shown_at: datetime
    session_id: str = field(default_factory=lambda: uuid4().hex)
    timer_id: Optional[int] = None
    state: PromptState = PromptState.SHOWN
    clicked_at: Optional[datetime] = None
    history: List[PromptState] = field(default_factory=lambda: [PromptState.SHOWN])


class NotificationLifecycleManager:
    def __init__(self, context: SamplingContext, quota: DailyQuota, dispatcher: SurveyDispatcher):
        self.ctx = context
        self.quota = quota
        self.dispatcher = dispatcher
        self._session: Optional[NotificationSession] = None

    @property
    def session(self) -> Optional[NotificationSession]:
        return self._session

    @property
    def state(self) -> PromptState:
        return self._session.state if self._session else PromptState.IDLE

    # -------------------------------------------------------------------------
    # IDLE -> SHOWN
    # -------------------------------------------------------------------------

    async def on_decision(self, element: TriggerElement, decision: str) -> Optional[NotificationSession]:
        """Show a prompt for a decision event if ready and under today's cap."""
        if not self.ctx.ready_for_surveys:
            logger.debug(f"Decision on {element.name} ignored; not ready for surveys")
            return None
        if not await self.quota.try_acquire():
            return None

        settings = self.ctx.settings
        self._supersede()

        self.ctx.host.notifications.show(
            tag=settings.notification_tag,
            title=settings.notification_title,
            body=settings.notification_body,
            icon=settings.icon_file,
            buttons=[settings.notification_button],
        )
        session = NotificationSession(
            tag=settings.notification_tag,
            element=element,
            decision=decision,
            shown_at=datetime.now(timezone.utc),
        )
        session.timer_id = self.ctx.timers.schedule_once(
            NOTIFICATION_ALARM, settings.notification_timeout_minutes
        )
        self._session = session
        logger.info(f"Prompt {session.session_id} shown for {element.name}/{decision}")
        return session

    # -------------------------------------------------------------------------
    # SHOWN -> RESOLVED -> IDLE
    # -------------------------------------------------------------------------

    async def on_clicked(self, tag: str) -> bool:
        """Body or button click. Dispatches the survey at most once per session."""
        session = self._session
        if session is None or session.tag != tag or session.state is not PromptState.SHOWN:
            logger.debug(f"Click on {tag} ignored; no live prompt")
            return False

        session.clicked_at = datetime.now(timezone.utc)
        self._transition(session, PromptState.RESOLVED_CLICKED)
        self._session = None
        try:
            await self.dispatcher.load_survey(
                session.element, session.decision, session.shown_at, session.clicked_at
            )
        finally:
            self._clear(session)
            self._transition(session, PromptState.IDLE)
        return True

    async def on_timeout(self, timer_id: Optional[int]) -> bool:
        """Expiry alarm. A firing that does not belong to the live session is stale."""
        session = self._session
        if session is None or session.state is not PromptState.SHOWN:
            logger.debug("Prompt timeout ignored; no live prompt")
            return False
        if timer_id is not None and timer_id != session.timer_id:
            logger.debug(f"Stale prompt timeout #{timer_id} ignored")
            return False

        self._transition(session, PromptState.RESOLVED_TIMED_OUT)
        self._session = None
        self._clear(session)
        self._transition(session, PromptState.IDLE)
        logger.info(f"Prompt {session.session_id} timed out")
        return True

    def reset(self) -> None:
        """Drop any live prompt without dispatching."""
        self._supersede()

    # -------------------------------------------------------------------------

    def _supersede(self) -> None:
        previous = self._session
        self._session = None
        if previous is not None:
            self._clear(previous)
            self._transition(previous, PromptState.IDLE)
            logger.info(f"Prompt {previous.session_id} superseded")
        else:
            # clears a stray notification/timer left by a missed cleanup
            self.ctx.host.notifications.clear(self.ctx.settings.notification_tag)
            self.ctx.timers.cancel(NOTIFICATION_ALARM)

    def _clear(self, session: NotificationSession) -> None:
        self.ctx.host.notifications.clear(session.tag)
        if self.ctx.timers.current_id(NOTIFICATION_ALARM) == session.timer_id:
            self.ctx.timers.cancel(NOTIFICATION_ALARM)

    def _transition(self, session: NotificationSession, to_state: PromptState) -> None:
        allowed, reason = can_transition(session.state, to_state)
        if not allowed:
            raise RuntimeError(reason)
        session.state = to_state
        session.history.append(to_state)
