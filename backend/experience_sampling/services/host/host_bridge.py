"""
Host Bridge

In-process stand-ins for the host capabilities the sampling core calls:
notification display, UI surface creation and self-uninstall. The HTTP
routers read from these objects so an external shell (browser extension,
desktop agent, test harness) can render what the core asked for and
report clicks back.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class DisplayedNotification:
    """A notification as handed to the host for display."""
    tag: str
    title: str
    body: str
    icon: str
    buttons: List[str]
    event_time: datetime

    def to_dict(self) -> dict:
        return {
            "tag": self.tag,
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "buttons": list(self.buttons),
            "event_time": self.event_time.isoformat(),
        }


class NotificationCenter:
    """Holds at most one notification per tag."""

    def __init__(self):
        self._active: Dict[str, DisplayedNotification] = {}

    def show(self, tag: str, title: str, body: str, icon: str, buttons: List[str]) -> DisplayedNotification:
        notification = DisplayedNotification(
            tag=tag,
            title=title,
            body=body,
            icon=icon,
            buttons=list(buttons),
            event_time=datetime.now(timezone.utc),
        )
        self._active[tag] = notification
        logger.info(f"Notification shown: {tag}")
        return notification

    def clear(self, tag: str) -> bool:
        removed = self._active.pop(tag, None) is not None
        if removed:
            logger.info(f"Notification cleared: {tag}")
        return removed

    def active(self) -> List[DisplayedNotification]:
        return list(self._active.values())


@dataclass
class OpenedSurface:
    url: str
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SurfaceRegistry:
    """Records every UI surface (consent form, setup survey, survey) opened."""

    def __init__(self):
        self._opened: List[OpenedSurface] = []

    def open(self, url: str) -> OpenedSurface:
        surface = OpenedSurface(url=url)
        self._opened.append(surface)
        logger.info(f"Opened UI surface: {url}")
        return surface

    def opened(self) -> List[OpenedSurface]:
        return list(self._opened)

    def urls(self) -> List[str]:
        return [s.url for s in self._opened]


class SelfUninstaller:
    """
    Terminal action taken when consent is rejected.

    Runs the registered teardown hooks once and flips uninstalled.
    """

    def __init__(self):
        self.uninstalled = False
        self.uninstalled_at: Optional[datetime] = None
        self._teardown: List[Callable[[], None]] = []

    def add_teardown(self, hook: Callable[[], None]) -> None:
        self._teardown.append(hook)

    def uninstall_self(self) -> None:
        if self.uninstalled:
            return
        self.uninstalled = True
        self.uninstalled_at = datetime.now(timezone.utc)
        logger.warning("Consent rejected; uninstalling")
        for hook in self._teardown:
            hook()


class HostBridge:
    """Bundle of host capabilities handed to the sampling context."""

    def __init__(
        self,
        notifications: Optional[NotificationCenter] = None,
        surfaces: Optional[SurfaceRegistry] = None,
        uninstaller: Optional[SelfUninstaller] = None,
    ):
        self.notifications = notifications or NotificationCenter()
        self.surfaces = surfaces or SurfaceRegistry()
        self.uninstaller = uninstaller or SelfUninstaller()
