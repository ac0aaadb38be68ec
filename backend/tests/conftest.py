"""
Shared fixtures: a fresh SQLite-backed sampling context per test.
"""
from unittest.mock import MagicMock

import pytest

from experience_sampling.config import Settings
from experience_sampling.database import build_engine, build_session_factory, init_db
from experience_sampling.services.delivery import SubmissionPipeline
from experience_sampling.services.host import HostBridge, StateStore, TimerService
from experience_sampling.services.sampling import EventBus, SamplingContext


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'state.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = build_engine(database_url)
    init_db(engine)
    return build_session_factory(engine)


@pytest.fixture
def settings():
    return Settings(
        server_url="https://collector.test",
        max_surveys_per_day=3,
        submit_timeout_seconds=0.5,
        retry_max_attempts=3,
        retry_backoff_base_minutes=1,
    )


@pytest.fixture
def make_context(session_factory, settings):
    """Build a context over the shared test database (one per event loop)."""
    def factory(**overrides):
        fields = dict(
            settings=settings,
            store=StateStore(session_factory),
            timers=TimerService(),
            host=HostBridge(),
            bus=EventBus(),
        )
        fields.update(overrides)
        return SamplingContext(**fields)
    return factory


def make_response(status_code=204, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def http_post():
    """Stand-in for requests.post answering 204."""
    return MagicMock(return_value=make_response(204, ""))


@pytest.fixture
def pipeline(settings, http_post):
    return SubmissionPipeline(settings, http_post=http_post)
