"""
Sampling Services

Consent/setup gating, daily throttling and the survey prompt lifecycle.

- EligibilityGate: consent -> setup -> readiness
- DailyQuota: per-day prompt cap on a rolling install-anchored window
- NotificationLifecycleManager: show -> click/timeout -> clear
- SurveyDispatcher: trigger element -> survey template
- Coordinator: single-consumer event loop tying them together
"""

from .events import (
    EventBus,
    TriggerElement,
    Installed,
    Startup,
    AlarmFired,
    DecisionMade,
    NotificationClicked,
    NotificationButtonClicked,
    StateChanged,
    SurveyCompleted,
    SubmissionSucceeded,
    SubmissionFailed,
    DrainPending,
)
from .context import SamplingContext
from .eligibility_gate import EligibilityGate, GateAction, evaluate
from .throttle import DailyQuota, may_show, next_reset_schedule
from .survey_dispatcher import SurveyDispatcher, EventType, find_event_type, select_survey
from .notification_lifecycle import NotificationLifecycleManager, NotificationSession, PromptState
from .coordinator import Coordinator

__all__ = [
    'EventBus',
    'TriggerElement',
    'Installed',
    'Startup',
    'AlarmFired',
    'DecisionMade',
    'NotificationClicked',
    'NotificationButtonClicked',
    'StateChanged',
    'SurveyCompleted',
    'SubmissionSucceeded',
    'SubmissionFailed',
    'DrainPending',
    'SamplingContext',
    'EligibilityGate',
    'GateAction',
    'evaluate',
    'DailyQuota',
    'may_show',
    'next_reset_schedule',
    'SurveyDispatcher',
    'EventType',
    'find_event_type',
    'select_survey',
    'NotificationLifecycleManager',
    'NotificationSession',
    'PromptState',
    'Coordinator',
]
