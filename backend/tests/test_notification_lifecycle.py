"""
Tests for the Notification Lifecycle state machine.

1. IDLE -> SHOWN creates notification, arms timer, counts the prompt
2. Only one live session; a new prompt supersedes the old one
3. Timeout before click: no survey
4. Click before timeout: exactly one survey, late timer is a no-op
5. Duplicate click + button click dispatch once
"""
import asyncio

import pytest

from experience_sampling.config import NOTIFICATION_ALARM
from experience_sampling.models.db_models import StateKey
from experience_sampling.services.sampling import (
    DailyQuota,
    NotificationLifecycleManager,
    PromptState,
    SurveyDispatcher,
    TriggerElement,
)
from experience_sampling.services.sampling.notification_lifecycle import can_transition


SSL = TriggerElement(name="ssl")


def _manager(ctx, ready=True):
    if ready:
        ctx.mark_ready()
    quota = DailyQuota(ctx.store, ctx.settings.max_surveys_per_day)
    return NotificationLifecycleManager(ctx, quota, SurveyDispatcher(ctx))


def _surveys_opened(ctx):
    return [url for url in ctx.host.surfaces.urls() if url.startswith("surveys/ssl.html")]


# =============================================================================
# TEST: STATE CONFIGURATION
# =============================================================================

class TestTransitions:

    def test_idle_can_only_go_to_shown(self):
        assert can_transition(PromptState.IDLE, PromptState.SHOWN)[0] is True
        assert can_transition(PromptState.IDLE, PromptState.RESOLVED_CLICKED)[0] is False

    def test_resolved_states_return_to_idle(self):
        assert can_transition(PromptState.RESOLVED_CLICKED, PromptState.IDLE)[0] is True
        assert can_transition(PromptState.RESOLVED_TIMED_OUT, PromptState.IDLE)[0] is True
        assert can_transition(PromptState.RESOLVED_TIMED_OUT, PromptState.RESOLVED_CLICKED)[0] is False


# =============================================================================
# TEST: SHOWING PROMPTS
# =============================================================================

class TestShow:

    def test_decision_shows_prompt(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)

            session = await manager.on_decision(SSL, "proceed")

            assert session is not None
            assert manager.state is PromptState.SHOWN
            active = ctx.host.notifications.active()
            assert len(active) == 1
            assert active[0].title == "New Chrome survey available!"
            assert active[0].buttons == ["Take survey!"]
            assert ctx.timers.current_id(NOTIFICATION_ALARM) == session.timer_id
            assert await ctx.store.get(StateKey.SURVEYS_SHOWN_TODAY.value) == 1

        asyncio.run(scenario())

    def test_not_ready_shows_nothing(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx, ready=False)

            assert await manager.on_decision(SSL, "proceed") is None
            assert ctx.host.notifications.active() == []
            assert await ctx.store.get(StateKey.SURVEYS_SHOWN_TODAY.value) is None

        asyncio.run(scenario())

    def test_throttled_decision_shows_nothing(self, make_context):
        async def scenario():
            ctx = make_context()
            await ctx.store.set(StateKey.SURVEYS_SHOWN_TODAY.value, ctx.settings.max_surveys_per_day)
            manager = _manager(ctx)

            assert await manager.on_decision(SSL, "proceed") is None
            assert manager.state is PromptState.IDLE
            assert not ctx.timers.is_scheduled(NOTIFICATION_ALARM)

        asyncio.run(scenario())

    def test_second_decision_supersedes_first(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)

            first = await manager.on_decision(SSL, "proceed")
            second = await manager.on_decision(TriggerElement(name="malware"), "back")

            assert manager.session is second
            assert first.state is PromptState.IDLE
            assert len(ctx.host.notifications.active()) == 1
            assert ctx.timers.current_id(NOTIFICATION_ALARM) == second.timer_id
            assert await ctx.store.get(StateKey.SURVEYS_SHOWN_TODAY.value) == 2

        asyncio.run(scenario())


# =============================================================================
# TEST: RESOLUTION RACES
# =============================================================================

class TestResolution:

    def test_timeout_before_click_dispatches_nothing(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)
            session = await manager.on_decision(SSL, "proceed")

            assert await manager.on_timeout(session.timer_id) is True
            assert await manager.on_clicked(session.tag) is False

            assert _surveys_opened(ctx) == []
            assert session.history == [
                PromptState.SHOWN, PromptState.RESOLVED_TIMED_OUT, PromptState.IDLE,
            ]
            assert ctx.host.notifications.active() == []

        asyncio.run(scenario())

    def test_click_before_timeout_dispatches_once(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)
            session = await manager.on_decision(SSL, "proceed")

            assert await manager.on_clicked(session.tag) is True
            assert await manager.on_timeout(session.timer_id) is False

            assert len(_surveys_opened(ctx)) == 1
            assert session.clicked_at is not None
            assert manager.state is PromptState.IDLE
            assert not ctx.timers.is_scheduled(NOTIFICATION_ALARM)
            assert ctx.host.notifications.active() == []

        asyncio.run(scenario())

    def test_click_and_button_click_dispatch_once(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)
            session = await manager.on_decision(SSL, "proceed")

            results = [await manager.on_clicked(session.tag), await manager.on_clicked(session.tag)]

            assert results == [True, False]
            assert len(_surveys_opened(ctx)) == 1

        asyncio.run(scenario())

    def test_stale_timer_from_superseded_prompt_is_ignored(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)
            first = await manager.on_decision(SSL, "proceed")
            second = await manager.on_decision(SSL, "back")

            assert await manager.on_timeout(first.timer_id) is False
            assert manager.session is second
            assert manager.state is PromptState.SHOWN

        asyncio.run(scenario())

    def test_click_on_other_tag_is_ignored(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)
            await manager.on_decision(SSL, "proceed")

            assert await manager.on_clicked("someOtherTag") is False
            assert manager.state is PromptState.SHOWN

        asyncio.run(scenario())

    def test_click_uses_original_element_and_decision(self, make_context):
        async def scenario():
            ctx = make_context()
            manager = _manager(ctx)
            session = await manager.on_decision(SSL, "proceed")

            await manager.on_clicked(session.tag)

            url = _surveys_opened(ctx)[0]
            assert "element=ssl" in url
            assert "decision=proceed" in url

        asyncio.run(scenario())
