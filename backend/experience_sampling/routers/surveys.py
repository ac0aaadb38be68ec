"""
Survey API Routes

Completed surveys arrive here from the survey UI and go to the
submission pipeline through the pending queue.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..dependencies import get_coordinator, require_installed
from ..models.survey import Response
from ..services.sampling import Coordinator, SurveyCompleted


router = APIRouter(prefix="/surveys", tags=["surveys"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class CompletedSurveyRequest(BaseModel):
    survey_type: str = Field(..., min_length=1)
    date_taken: Optional[datetime] = None
    responses: List[Response] = Field(default_factory=list)


class CompletedSurveyResponse(BaseModel):
    queued: bool
    entry_id: Optional[str] = None


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("", response_model=CompletedSurveyResponse, status_code=202)
async def submit_survey(
    request: CompletedSurveyRequest,
    coordinator: Coordinator = Depends(require_installed),
):
    """
    Accept a completed survey. Delivery happens in the background; the
    response only says whether it was queued.
    """
    entry_id = await coordinator.bus.dispatch(
        SurveyCompleted(
            survey_type=request.survey_type,
            responses=[(r.question, r.answer) for r in request.responses],
            date_taken=request.date_taken,
        )
    )
    if entry_id is None:
        raise HTTPException(status_code=403, detail="Consent has not been granted")
    return CompletedSurveyResponse(queued=True, entry_id=entry_id)


@router.get("/pending", response_model=list)
async def list_pending(coordinator: Coordinator = Depends(get_coordinator)):
    """Surveys not yet confirmed delivered."""
    return [
        {
            "id": e["id"],
            "survey_type": e["survey"]["type"],
            "attempts": e["attempts"],
            "last_status": e["last_status"],
            "next_attempt_at": e["next_attempt_at"],
            "in_flight": coordinator.pending.is_in_flight(e["id"]),
        }
        for e in await coordinator.pending.entries()
    ]
