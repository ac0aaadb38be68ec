"""Experience Sampling - API Routers"""
from .events import router as events_router
from .notifications import router as notifications_router
from .participant import router as participant_router
from .surveys import router as surveys_router
from .scheduler import router as scheduler_router

__all__ = [
    "events_router",
    "notifications_router",
    "participant_router",
    "surveys_router",
    "scheduler_router",
]
