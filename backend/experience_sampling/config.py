"""
Experience Sampling - Configuration

Settings are read from environment variables once at startup and carried
through the process on the SamplingContext.
"""
import os
from dataclasses import dataclass


# Remote collector
SERVER_URL = os.getenv("ESP_SERVER_URL", "https://chrome-experience-sampling.appspot.com")
SUBMIT_SURVEY_ACTION = os.getenv("ESP_SUBMIT_SURVEY_ACTION", "/_ah/api/cesp/v1/submitsurvey")
SUBMIT_TIMEOUT_SECONDS = float(os.getenv("ESP_SUBMIT_TIMEOUT_SECONDS", "4"))

# Throttling
MAX_SURVEYS_PER_DAY = int(os.getenv("ESP_MAX_SURVEYS_PER_DAY", "10"))
COUNT_RESET_DELAY_MINUTES = float(os.getenv("ESP_COUNT_RESET_DELAY_MINUTES", "5"))
COUNT_RESET_PERIOD_MINUTES = float(os.getenv("ESP_COUNT_RESET_PERIOD_MINUTES", "1440"))

# Notification prompt
NOTIFICATION_TITLE = "New Chrome survey available!"
NOTIFICATION_BODY = "Your feedback makes Chrome better."
NOTIFICATION_BUTTON = "Take survey!"
ICON_FILE = "icon.png"
NOTIFICATION_TAG = "chromeSurvey"
NOTIFICATION_TIMEOUT_MINUTES = float(os.getenv("ESP_NOTIFICATION_TIMEOUT_MINUTES", "10"))

# Alarm names
NOTIFICATION_ALARM = "notificationTimeout"
COUNT_RESET_ALARM = "surveyCountReset"
PENDING_RETRY_ALARM = "pendingResponsesRetry"

# Pending response retry
RETRY_PERIOD_MINUTES = float(os.getenv("ESP_RETRY_PERIOD_MINUTES", "15"))
RETRY_MAX_ATTEMPTS = int(os.getenv("ESP_RETRY_MAX_ATTEMPTS", "5"))
RETRY_BACKOFF_BASE_MINUTES = float(os.getenv("ESP_RETRY_BACKOFF_BASE_MINUTES", "1"))

# Internal scheduler endpoints
INTERNAL_API_KEY = os.getenv("ESP_INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings snapshot."""
    server_url: str = SERVER_URL
    submit_survey_action: str = SUBMIT_SURVEY_ACTION
    submit_timeout_seconds: float = SUBMIT_TIMEOUT_SECONDS
    max_surveys_per_day: int = MAX_SURVEYS_PER_DAY
    count_reset_delay_minutes: float = COUNT_RESET_DELAY_MINUTES
    count_reset_period_minutes: float = COUNT_RESET_PERIOD_MINUTES
    notification_title: str = NOTIFICATION_TITLE
    notification_body: str = NOTIFICATION_BODY
    notification_button: str = NOTIFICATION_BUTTON
    icon_file: str = ICON_FILE
    notification_tag: str = NOTIFICATION_TAG
    notification_timeout_minutes: float = NOTIFICATION_TIMEOUT_MINUTES
    retry_period_minutes: float = RETRY_PERIOD_MINUTES
    retry_max_attempts: int = RETRY_MAX_ATTEMPTS
    retry_backoff_base_minutes: float = RETRY_BACKOFF_BASE_MINUTES
    internal_api_key: str = INTERNAL_API_KEY

    @property
    def submit_url(self) -> str:
        return self.server_url + self.submit_survey_action

    @classmethod
    def from_env(cls) -> "Settings":
        """Re-read the environment (module constants are bound at import)."""
        return cls(
            server_url=os.getenv("ESP_SERVER_URL", SERVER_URL),
            submit_survey_action=os.getenv("ESP_SUBMIT_SURVEY_ACTION", SUBMIT_SURVEY_ACTION),
            submit_timeout_seconds=float(os.getenv("ESP_SUBMIT_TIMEOUT_SECONDS", str(SUBMIT_TIMEOUT_SECONDS))),
            max_surveys_per_day=int(os.getenv("ESP_MAX_SURVEYS_PER_DAY", str(MAX_SURVEYS_PER_DAY))),
            count_reset_delay_minutes=float(os.getenv("ESP_COUNT_RESET_DELAY_MINUTES", str(COUNT_RESET_DELAY_MINUTES))),
            count_reset_period_minutes=float(os.getenv("ESP_COUNT_RESET_PERIOD_MINUTES", str(COUNT_RESET_PERIOD_MINUTES))),
            notification_timeout_minutes=float(os.getenv("ESP_NOTIFICATION_TIMEOUT_MINUTES", str(NOTIFICATION_TIMEOUT_MINUTES))),
            retry_period_minutes=float(os.getenv("ESP_RETRY_PERIOD_MINUTES", str(RETRY_PERIOD_MINUTES))),
            retry_max_attempts=int(os.getenv("ESP_RETRY_MAX_ATTEMPTS", str(RETRY_MAX_ATTEMPTS))),
            retry_backoff_base_minutes=float(os.getenv("ESP_RETRY_BACKOFF_BASE_MINUTES", str(RETRY_BACKOFF_BASE_MINUTES))),
            internal_api_key=os.getenv("ESP_INTERNAL_API_KEY", INTERNAL_API_KEY),
        )
