"""
Tests for the Survey Dispatcher.
"""
import asyncio
import logging
from datetime import datetime, timezone

import pytest

from experience_sampling.services.sampling import (
    EventType,
    SurveyDispatcher,
    TriggerElement,
    find_event_type,
    select_survey,
)


SHOWN = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
CLICKED = datetime(2024, 3, 1, 12, 2, tzinfo=timezone.utc)


class TestClassification:

    @pytest.mark.parametrize("name,expected", [
        ("ssl", EventType.SSL),
        ("SSL_overridable", EventType.SSL),
        ("malware", EventType.MALWARE),
        ("harmful", EventType.MALWARE),
        ("phishing", EventType.PHISHING),
        ("extension_install_dialog_", EventType.UNKNOWN),
        ("", EventType.UNKNOWN),
        (None, EventType.UNKNOWN),
    ])
    def test_find_event_type(self, name, expected):
        assert find_event_type(name) is expected

    def test_known_element_selects_its_template(self):
        assert select_survey("ssl") == "ssl.html"
        assert select_survey("phishing") == "phishing.html"

    def test_unknown_element_falls_back_and_logs(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert select_survey("download_prompt") == "survey-example.html"
        assert "Unknown event type: download_prompt" in caplog.text


class TestLoadSurvey:

    def test_opens_survey_when_ready(self, make_context):
        async def scenario():
            ctx = make_context()
            ctx.mark_ready()
            dispatcher = SurveyDispatcher(ctx)

            url = await dispatcher.load_survey(TriggerElement("ssl"), "proceed", SHOWN, CLICKED)

            assert url.startswith("surveys/ssl.html?")
            assert "decision=proceed" in url
            assert ctx.host.surfaces.urls() == [url]

        asyncio.run(scenario())

    def test_noop_when_not_ready(self, make_context):
        async def scenario():
            ctx = make_context()
            dispatcher = SurveyDispatcher(ctx)

            assert await dispatcher.load_survey(TriggerElement("ssl"), "proceed", SHOWN, CLICKED) is None
            assert ctx.host.surfaces.urls() == []

        asyncio.run(scenario())
