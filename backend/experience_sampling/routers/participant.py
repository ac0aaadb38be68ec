"""
Participant API Routes

Status for the host shell, the list of UI surfaces the core has asked to
open, and the state keys the external consent and setup forms write.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..dependencies import get_coordinator, require_installed
from ..models.db_models import ConsentStatus, OnboardingStatus, StateKey
from ..services.sampling import Coordinator


router = APIRouter(tags=["participant"])

# Keys the external forms are allowed to write, with their value enums
WRITABLE_KEYS = {
    StateKey.CONSENT.value: ConsentStatus,
    StateKey.ONBOARDING.value: OnboardingStatus,
}


class StateValue(BaseModel):
    value: Optional[Any] = None


@router.get("/status", response_model=dict)
async def get_status(coordinator: Coordinator = Depends(get_coordinator)):
    ctx = coordinator.ctx
    uninstalled_at = ctx.host.uninstaller.uninstalled_at
    return {
        "participant_id": ctx.participant_id,
        "operating_system": ctx.operating_system,
        "ready_for_surveys": ctx.ready_for_surveys,
        "uninstalled": ctx.uninstalled,
        "uninstalled_at": uninstalled_at.isoformat() if uninstalled_at else None,
        "surveys_shown_today": await coordinator.quota.count(),
        "max_surveys_per_day": coordinator.quota.max_per_day,
        "prompt_state": coordinator.lifecycle.state.value,
        "pending_responses": len(await coordinator.pending.entries()),
    }


@router.get("/surfaces", response_model=list)
async def list_surfaces(coordinator: Coordinator = Depends(get_coordinator)):
    """UI surfaces (consent form, setup survey, surveys) opened so far."""
    return [
        {"url": s.url, "opened_at": s.opened_at.isoformat()}
        for s in coordinator.ctx.host.surfaces.opened()
    ]


@router.get("/state/{key}", response_model=dict)
async def read_state(key: str, coordinator: Coordinator = Depends(get_coordinator)):
    try:
        state_key = StateKey(key)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown state key: {key}")
    return {"key": state_key.value, "value": await coordinator.ctx.store.get(state_key.value)}


@router.put("/state/{key}", response_model=dict)
async def write_state(
    key: str,
    body: StateValue,
    coordinator: Coordinator = Depends(require_installed),
):
    """
    Written by the consent form and the setup survey when they complete.
    Only consent and setup status are writable from outside.
    """
    value_enum = WRITABLE_KEYS.get(key)
    if value_enum is None:
        raise HTTPException(status_code=400, detail=f"State key not writable: {key}")
    try:
        value = value_enum(body.value).value
    except ValueError:
        valid = [e.value for e in value_enum]
        raise HTTPException(status_code=400, detail=f"Invalid value {body.value!r}; expected one of {valid}")

    await coordinator.ctx.store.set(key, value)
    # let the eligibility gate react before answering
    await coordinator.bus.join()
    return {
        "key": key,
        "value": value,
        "ready_for_surveys": coordinator.ctx.ready_for_surveys,
        "uninstalled": coordinator.ctx.uninstalled,
    }
