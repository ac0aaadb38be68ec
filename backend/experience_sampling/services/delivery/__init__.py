"""
Delivery Services

Completed surveys → collector, with a persisted pending queue for
anything that has not been confirmed delivered.
"""

from .submission import (
    SubmissionPipeline,
    SubmissionResult,
    SubmissionOutcome,
    SubmissionError,
    SubmissionHttpError,
    SubmissionTimeout,
    SubmissionNetworkError,
)
from .pending_queue import PendingResponseQueue, backoff_minutes

__all__ = [
    'SubmissionPipeline',
    'SubmissionResult',
    'SubmissionOutcome',
    'SubmissionError',
    'SubmissionHttpError',
    'SubmissionTimeout',
    'SubmissionNetworkError',
    'PendingResponseQueue',
    'backoff_minutes',
]
