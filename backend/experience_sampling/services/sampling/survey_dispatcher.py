"""
Survey Dispatcher

Maps the element a decision was made about to a survey template and opens
it. Unknown elements get the generic example survey (logged) instead of
no survey at all.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Optional
from urllib.parse import urlencode

from .context import SamplingContext
from .events import TriggerElement

logger = logging.getLogger(__name__)


SURVEY_DIRECTORY = "surveys/"


class EventType(str, Enum):
    SSL = "ssl"
    MALWARE = "malware"
    PHISHING = "phishing"
    UNKNOWN = "unknown"


# Element-name prefixes reported by the interstitial event source
EVENT_TYPE_PREFIXES = [
    ("ssl", EventType.SSL),
    ("malware", EventType.MALWARE),
    ("harmful", EventType.MALWARE),
    ("phishing", EventType.PHISHING),
]

SURVEY_LOCATIONS = {
    EventType.SSL: "ssl.html",
    EventType.MALWARE: "malware.html",
    EventType.PHISHING: "phishing.html",
    EventType.UNKNOWN: "survey-example.html",
}


def find_event_type(element_name: Optional[str]) -> EventType:
    name = (element_name or "").strip().lower()
    for prefix, event_type in EVENT_TYPE_PREFIXES:
        if name.startswith(prefix):
            return event_type
    return EventType.UNKNOWN


def select_survey(element_name: Optional[str]) -> str:
    """Template id for an element name; falls back to the example survey."""
    event_type = find_event_type(element_name)
    if event_type is EventType.UNKNOWN:
        logger.warning(f"Unknown event type: {element_name}")
    return SURVEY_LOCATIONS[event_type]


class SurveyDispatcher:
    def __init__(self, context: SamplingContext):
        self.ctx = context

    def survey_url(
        self,
        template: str,
        element: TriggerElement,
        decision: str,
        shown_at: datetime,
        clicked_at: datetime,
    ) -> str:
        query = urlencode({
            "element": element.name,
            "decision": decision,
            "shown": shown_at.isoformat(),
            "clicked": clicked_at.isoformat(),
        })
        return f"{SURVEY_DIRECTORY}{template}?{query}"

    async def load_survey(
        self,
        element: TriggerElement,
        decision: str,
        shown_at: datetime,
        clicked_at: datetime,
    ) -> Optional[str]:
        """Open the survey for a clicked prompt. No-op unless ready."""
        if not self.ctx.ready_for_surveys:
            logger.warning("Survey dispatch requested while not ready; ignored")
            return None

        template = select_survey(element.name)
        url = self.survey_url(template, element, decision, shown_at, clicked_at)
        self.ctx.host.surfaces.open(url)
        logger.info(f"Opened survey {template} for {element.name}/{decision}")
        return url
