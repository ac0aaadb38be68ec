"""
Sampling Context

Process-wide object built at startup and handed to every component.
ready_for_surveys lives here and only here; it starts False on every
process start and is re-derived from persisted consent and setup status.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ...config import Settings
from ..host import HostBridge, StateStore, TimerService
from .events import EventBus

logger = logging.getLogger(__name__)


@dataclass
class SamplingContext:
    settings: Settings
    store: StateStore
    timers: TimerService
    host: HostBridge
    bus: EventBus
    ready_for_surveys: bool = False
    participant_id: Optional[str] = None
    operating_system: str = ""

    def mark_ready(self) -> None:
        if not self.ready_for_surveys:
            logger.info("Participant ready for surveys")
        self.ready_for_surveys = True

    def revoke_ready(self) -> None:
        if self.ready_for_surveys:
            logger.info("Survey readiness revoked")
        self.ready_for_surveys = False

    @property
    def uninstalled(self) -> bool:
        return self.host.uninstaller.uninstalled
