"""
Scheduler API Routes

Internal endpoints for system-automatic tasks: firing an alarm by hand
(external cron, operations) and draining the pending response queue.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from ..config import COUNT_RESET_ALARM, NOTIFICATION_ALARM, PENDING_RETRY_ALARM
from ..dependencies import require_installed, verify_internal_key
from ..services.sampling import AlarmFired, Coordinator, DrainPending


router = APIRouter(prefix="/internal", tags=["scheduler"])

KNOWN_ALARMS = (NOTIFICATION_ALARM, COUNT_RESET_ALARM, PENDING_RETRY_ALARM)


@router.post("/alarms/{name}", response_model=dict)
async def fire_alarm(
    name: str,
    coordinator: Coordinator = Depends(require_installed),
    _: bool = Depends(verify_internal_key),
):
    """
    Fire a named alarm now.

    The notification timeout is delivered with the live timer id, so it
    behaves exactly like the armed timer firing.
    """
    if name not in KNOWN_ALARMS:
        raise HTTPException(status_code=404, detail=f"Unknown alarm: {name}")

    timer_id = coordinator.ctx.timers.current_id(name)
    result = await coordinator.bus.dispatch(AlarmFired(name=name, timer_id=timer_id))
    return {
        "task": name,
        "run_date": datetime.now(timezone.utc).isoformat(),
        "result": result if isinstance(result, (bool, int)) or result is None else str(result),
    }


@router.post("/pending/drain", response_model=dict)
async def drain_pending(
    coordinator: Coordinator = Depends(require_installed),
    _: bool = Depends(verify_internal_key),
):
    """Retry every pending response whose backoff has elapsed."""
    sent = await coordinator.bus.dispatch(DrainPending())
    return {
        "task": "pending_drain",
        "run_date": datetime.now(timezone.utc).isoformat(),
        "submitted": sent,
    }
