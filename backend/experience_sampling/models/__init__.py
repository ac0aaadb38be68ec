"""Experience Sampling - Data Models"""
from .db_models import ConsentStatus, OnboardingStatus, StateKey, StateEntryDB
from .survey import Response, Survey, SurveyPayload, format_date_taken

__all__ = [
    "ConsentStatus", "OnboardingStatus", "StateKey", "StateEntryDB",
    "Response", "Survey", "SurveyPayload", "format_date_taken",
]
