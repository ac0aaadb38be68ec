"""
Decision Events API Routes

Entry point for the triggering event source (e.g. a security
interstitial reporting the participant's choice).
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..dependencies import require_installed
from ..services.sampling import Coordinator, DecisionMade, TriggerElement


router = APIRouter(prefix="/events", tags=["events"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class ElementModel(BaseModel):
    name: str = Field(..., min_length=1)


class DecisionEventRequest(BaseModel):
    element: ElementModel
    decision: str = Field(..., min_length=1)


class DecisionEventResponse(BaseModel):
    prompted: bool
    session_id: Optional[str] = None


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/decision", response_model=DecisionEventResponse)
async def report_decision(
    request: DecisionEventRequest,
    coordinator: Coordinator = Depends(require_installed),
):
    """
    Report a decision the participant made.

    A prompt is shown only when the participant is ready for surveys and
    today's cap has not been reached; otherwise the event is absorbed.
    """
    session = await coordinator.bus.dispatch(
        DecisionMade(element=TriggerElement(name=request.element.name), decision=request.decision)
    )
    if session is None:
        return DecisionEventResponse(prompted=False)
    return DecisionEventResponse(prompted=True, session_id=session.session_id)
