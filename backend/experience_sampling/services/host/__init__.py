"""
Host Capabilities

Adapters for the collaborators the sampling core calls but does not own:
durable key-value state, alarms, and the notification / UI / uninstall
surface of the host.
"""

from .state_store import StateStore, StateChange
from .timer_service import TimerService
from .host_bridge import (
    HostBridge,
    NotificationCenter,
    DisplayedNotification,
    SurfaceRegistry,
    SelfUninstaller,
)

__all__ = [
    'StateStore',
    'StateChange',
    'TimerService',
    'HostBridge',
    'NotificationCenter',
    'DisplayedNotification',
    'SurfaceRegistry',
    'SelfUninstaller',
]
