"""
Submission Pipeline

Sends a completed Survey to the remote collector and classifies the result.

- HTTP 204                 -> success, on_success(response_body)
- any other HTTP status    -> error,   on_error(status_code)
- timeout / network error  -> error,   on_error()  (no status)

submit() returns immediately; the POST runs on a worker thread under a
hard asyncio timeout. A response that lands after the timeout has fired
is discarded.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

import requests

from ...config import Settings
from ...models.survey import Survey

logger = logging.getLogger(__name__)


SUCCESS_STATUS = 204


# =============================================================================
# ERRORS & OUTCOMES
# =============================================================================

class SubmissionError(Exception):
    """A survey could not be delivered."""
    status_code: Optional[int] = None


class SubmissionHttpError(SubmissionError):
    def __init__(self, status_code: int):
        super().__init__(f"Collector answered HTTP {status_code}")
        self.status_code = status_code


class SubmissionTimeout(SubmissionError):
    def __init__(self, timeout_seconds: float):
        super().__init__(f"No answer from collector within {timeout_seconds}s")


class SubmissionNetworkError(SubmissionError):
    pass


class SubmissionOutcome(str, Enum):
    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    status_code: Optional[int] = None
    body: Optional[str] = None
    error: Optional[SubmissionError] = None

    @property
    def ok(self) -> bool:
        return self.outcome is SubmissionOutcome.SUCCESS


SuccessCallback = Callable[[Optional[str]], None]
ErrorCallback = Callable[..., None]


# =============================================================================
# PIPELINE
# =============================================================================

class SubmissionPipeline:
    def __init__(self, settings: Settings, http_post: Callable[..., Any] = requests.post):
        self.settings = settings
        self._http_post = http_post
        self._tasks: Set[asyncio.Task] = set()

    @staticmethod
    def serialize(survey: Survey) -> Dict[str, Any]:
        return survey.to_payload().to_json_dict()

    def submit(self, survey: Survey, on_success: SuccessCallback, on_error: ErrorCallback) -> asyncio.Task:
        """Fire-and-forget send; exactly one of the callbacks runs when it settles."""
        task = asyncio.get_running_loop().create_task(self._deliver(survey, on_success, on_error))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def send(self, survey: Survey) -> SubmissionResult:
        """Awaitable send that classifies instead of raising."""
        timeout = self.settings.submit_timeout_seconds
        try:
            payload = self.serialize(survey)
            response = await asyncio.wait_for(
                asyncio.to_thread(self._post, payload, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return SubmissionResult(SubmissionOutcome.TIMEOUT, error=SubmissionTimeout(timeout))
        except requests.Timeout:
            return SubmissionResult(SubmissionOutcome.TIMEOUT, error=SubmissionTimeout(timeout))
        except requests.RequestException as e:
            return SubmissionResult(SubmissionOutcome.NETWORK_ERROR, error=SubmissionNetworkError(str(e)))
        except Exception as e:
            # no status to report, so it is retried like a network failure
            logger.exception(f"Unexpected error posting survey {survey.type}: {e}")
            return SubmissionResult(SubmissionOutcome.NETWORK_ERROR, error=SubmissionNetworkError(repr(e)))

        if response.status_code == SUCCESS_STATUS:
            return SubmissionResult(SubmissionOutcome.SUCCESS, status_code=SUCCESS_STATUS, body=response.text)
        return SubmissionResult(
            SubmissionOutcome.HTTP_ERROR,
            status_code=response.status_code,
            body=response.text,
            error=SubmissionHttpError(response.status_code),
        )

    async def drain(self) -> None:
        """Wait for in-flight submissions."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------

    def _post(self, payload: Dict[str, Any], timeout: float):
        return self._http_post(
            self.settings.submit_url,
            data=json.dumps(payload),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    async def _deliver(self, survey: Survey, on_success: SuccessCallback, on_error: ErrorCallback) -> SubmissionResult:
        result = await self.send(survey)
        if result.ok:
            logger.info(f"Survey {survey.type} delivered")
            on_success(result.body)
        elif result.status_code is not None:
            logger.warning(f"Survey {survey.type} rejected: HTTP {result.status_code}")
            on_error(result.status_code)
        else:
            logger.warning(f"Survey {survey.type} not delivered: {result.error}")
            on_error()
        return result

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Submission callback failed: {error!r}")
