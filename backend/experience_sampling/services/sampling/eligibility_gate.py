"""
Eligibility Gate

Decides, from persisted consent and setup status, whether the participant
may be shown surveys and, if not, which remedial action to take.

Decision table (evaluated in precedence order):
- consent absent or PENDING   -> SHOW_CONSENT_FORM (and observe changes)
- consent REJECTED            -> UNINSTALL (terminal)
- consent GRANTED             -> CHECK_ONBOARDING, which resolves to
    - setup absent or PENDING -> SHOW_ONBOARDING_FORM
    - setup COMPLETED         -> MARK_READY

Runs at install and at every process start. From then on it observes the
state store until uninstall: a setup survey completed while the process is
alive marks readiness without a restart, and consent withdrawn later
revokes readiness (or uninstalls, when rejected).
"""
import logging
from enum import Enum
from typing import Any, Callable, Optional, Set

from ...models.db_models import ConsentStatus, OnboardingStatus, StateKey
from ..host.state_store import StateChange
from .context import SamplingContext
from .events import StateChanged

logger = logging.getLogger(__name__)


CONSENT_FORM_URL = "consent.html"
SETUP_SURVEY_URL = "surveys/setup.html"

OBSERVED_KEYS = (StateKey.CONSENT.value, StateKey.ONBOARDING.value)


class GateAction(str, Enum):
    SHOW_CONSENT_FORM = "show_consent_form"
    UNINSTALL = "uninstall"
    CHECK_ONBOARDING = "check_onboarding"
    MARK_READY = "mark_ready"
    SHOW_ONBOARDING_FORM = "show_onboarding_form"


def _coerce(enum_cls, value: Any):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Unrecognized {enum_cls.__name__} value {value!r}; treating as pending")
        return None


def evaluate_consent(consent_status: Any) -> GateAction:
    consent = _coerce(ConsentStatus, consent_status)
    if consent is None or consent == ConsentStatus.PENDING:
        return GateAction.SHOW_CONSENT_FORM
    if consent == ConsentStatus.REJECTED:
        return GateAction.UNINSTALL
    return GateAction.CHECK_ONBOARDING


def evaluate_onboarding(onboarding_status: Any) -> GateAction:
    onboarding = _coerce(OnboardingStatus, onboarding_status)
    if onboarding == OnboardingStatus.COMPLETED:
        return GateAction.MARK_READY
    return GateAction.SHOW_ONBOARDING_FORM


def evaluate(consent_status: Any, onboarding_status: Any = None) -> GateAction:
    """Pure decision over the two persisted statuses."""
    action = evaluate_consent(consent_status)
    if action is GateAction.CHECK_ONBOARDING:
        return evaluate_onboarding(onboarding_status)
    return action


class EligibilityGate:
    """Applies evaluate() to the live context."""

    def __init__(self, context: SamplingContext):
        self.ctx = context
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._opened: Set[str] = set()

    @property
    def observing(self) -> bool:
        return self._unsubscribe is not None

    async def check(self) -> GateAction:
        """Read persisted status, decide, and carry out the action."""
        statuses = await self.ctx.store.get_many(*OBSERVED_KEYS)
        action = evaluate(statuses[StateKey.CONSENT.value], statuses[StateKey.ONBOARDING.value])
        logger.info(f"Eligibility check: {action.value}")

        if action is GateAction.SHOW_CONSENT_FORM:
            self._observe()
            self._open_once(CONSENT_FORM_URL)
        elif action is GateAction.SHOW_ONBOARDING_FORM:
            self._observe()
            self._open_once(SETUP_SURVEY_URL)
        elif action is GateAction.MARK_READY:
            self._observe()
            self.ctx.mark_ready()
        elif action is GateAction.UNINSTALL:
            self._uninstall()
        return action

    async def on_state_changed(self, change: StateChange) -> Optional[GateAction]:
        """
        React to a persisted status change seen while observing.

        The change itself is only a hint: current persisted state is
        re-read before anything takes effect. A form already opened in this
        process is never opened again. Readiness holds only while the
        re-read state still resolves to MARK_READY.
        """
        if not self.observing or change.key not in OBSERVED_KEYS:
            return None

        statuses = await self.ctx.store.get_many(*OBSERVED_KEYS)
        action = evaluate(statuses[StateKey.CONSENT.value], statuses[StateKey.ONBOARDING.value])

        if action is GateAction.SHOW_CONSENT_FORM:
            self.ctx.revoke_ready()
            self._open_once(CONSENT_FORM_URL)
        elif action is GateAction.SHOW_ONBOARDING_FORM:
            self.ctx.revoke_ready()
            self._open_once(SETUP_SURVEY_URL)
        elif action is GateAction.MARK_READY:
            self.ctx.mark_ready()
        elif action is GateAction.UNINSTALL:
            self._uninstall()
        return action

    def reset(self) -> None:
        self._stop_observing()
        self._opened.clear()

    # -------------------------------------------------------------------------

    def _observe(self) -> None:
        if self._unsubscribe is not None:
            return
        bus = self.ctx.bus

        def listener(change: StateChange) -> None:
            if change.key in OBSERVED_KEYS:
                bus.post(StateChanged(change))

        self._unsubscribe = self.ctx.store.on_change(listener)
        logger.debug("Observing consent/setup status changes")

    def _stop_observing(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _open_once(self, url: str) -> None:
        if url in self._opened:
            return
        self._opened.add(url)
        self.ctx.host.surfaces.open(url)

    def _uninstall(self) -> None:
        self._stop_observing()
        self.ctx.revoke_ready()
        self.ctx.host.uninstaller.uninstall_self()
