"""
Experience Sampling - Survey Models

A Survey is built once by the survey UI when the participant submits it,
and is consumed by the submission pipeline. SurveyPayload is the exact
body the remote collector expects.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class Response(BaseModel):
    """A single question and the participant's answer to it."""
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str


class Survey(BaseModel):
    """A completed survey. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1)
    participant_id: str = Field(..., min_length=1)
    date_taken: datetime
    responses: List[Response] = Field(default_factory=list)

    def to_payload(self) -> "SurveyPayload":
        return SurveyPayload(
            date_taken=format_date_taken(self.date_taken),
            participant_id=self.participant_id,
            responses=list(self.responses),
            survey_type=self.type,
        )


class SurveyPayload(BaseModel):
    """Wire body for the collector's submit-survey endpoint."""
    date_taken: str
    participant_id: str
    responses: List[Response]
    survey_type: str

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def format_date_taken(value: datetime) -> str:
    """
    ISO-8601 in UTC with millisecond precision and no zone designator.

    2024-03-01T12:00:00.000Z -> "2024-03-01T12:00:00.000". The collector
    rejects the trailing "Z", so it is stripped and nothing else changes.
    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    iso = value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"
    if iso.endswith("Z"):
        iso = iso[:-1]
    return iso
