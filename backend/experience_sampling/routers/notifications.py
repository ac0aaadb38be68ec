"""
Notification API Routes

The host polls for the prompt to display and reports clicks on its body
or its action button.
"""
from typing import List

from fastapi import APIRouter, Depends

from ..dependencies import get_coordinator, require_installed
from ..services.sampling import Coordinator, NotificationButtonClicked, NotificationClicked


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/active", response_model=List[dict])
async def list_active_notifications(coordinator: Coordinator = Depends(get_coordinator)):
    """Notifications the host should currently display."""
    return [n.to_dict() for n in coordinator.ctx.host.notifications.active()]


@router.post("/{tag}/click", response_model=dict)
async def click_notification(tag: str, coordinator: Coordinator = Depends(require_installed)):
    resolved = await coordinator.bus.dispatch(NotificationClicked(tag=tag))
    return {"tag": tag, "resolved": bool(resolved)}


@router.post("/{tag}/buttons/{button_index}/click", response_model=dict)
async def click_notification_button(
    tag: str,
    button_index: int,
    coordinator: Coordinator = Depends(require_installed),
):
    resolved = await coordinator.bus.dispatch(NotificationButtonClicked(tag=tag, button_index=button_index))
    return {"tag": tag, "button_index": button_index, "resolved": bool(resolved)}
