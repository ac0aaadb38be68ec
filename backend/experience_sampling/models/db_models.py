"""
Experience Sampling - SQLAlchemy ORM Models
Key-value table backing the durable state store
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, JSON
from ..database import Base


# =============================================================================
# ENUMS FOR PARTICIPANT STATE
# =============================================================================

class ConsentStatus(str, Enum):
    """Written once by the external consent form."""
    PENDING = "pending"
    GRANTED = "granted"
    REJECTED = "rejected"


class OnboardingStatus(str, Enum):
    """Written once by the external setup survey."""
    PENDING = "pending"
    COMPLETED = "completed"


class StateKey(str, Enum):
    """Keys held in the durable state store."""
    CONSENT = "consent_status"
    ONBOARDING = "setup_status"
    PARTICIPANT_ID = "participant_id"
    SURVEYS_SHOWN_TODAY = "surveys_shown_today"
    PENDING_RESPONSES = "pending_responses"
    OPERATING_SYSTEM = "operating_system"
    INSTALLED_AT = "installed_at"
    COUNT_RESET_ANCHOR = "survey_count_reset_anchor"
    LAST_COUNT_RESET = "last_survey_count_reset"


# =============================================================================
# STATE TABLE
# =============================================================================

class StateEntryDB(Base):
    """One persisted key with a JSON value."""
    __tablename__ = "state_entries"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
