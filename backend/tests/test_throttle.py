"""
Tests for the Throttle Controller and the daily survey count.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from experience_sampling.models.db_models import StateKey
from experience_sampling.services.sampling import DailyQuota, may_show, next_reset_schedule


# =============================================================================
# TEST: may_show
# =============================================================================

class TestMayShow:

    @pytest.mark.parametrize("count,maximum,expected", [
        (0, 10, True),
        (9, 10, True),
        (10, 10, False),
        (11, 10, False),
        (0, 0, False),
    ])
    def test_true_iff_count_below_max(self, count, maximum, expected):
        assert may_show(count, maximum) is expected


# =============================================================================
# TEST: DailyQuota
# =============================================================================

class TestDailyQuota:

    def test_count_starts_at_zero_when_unset(self, make_context):
        async def scenario():
            quota = DailyQuota(make_context().store, 3)
            assert await quota.count() == 0

        asyncio.run(scenario())

    def test_each_acquire_increments_persisted_count(self, make_context):
        async def scenario():
            ctx = make_context()
            quota = DailyQuota(ctx.store, 3)

            assert await quota.try_acquire() is True
            assert await quota.try_acquire() is True

            assert await ctx.store.get(StateKey.SURVEYS_SHOWN_TODAY.value) == 2

        asyncio.run(scenario())

    def test_acquire_refused_at_cap_without_incrementing(self, make_context):
        async def scenario():
            quota = DailyQuota(make_context().store, 2)
            assert await quota.try_acquire() is True
            assert await quota.try_acquire() is True

            assert await quota.try_acquire() is False
            assert await quota.count() == 2

        asyncio.run(scenario())

    def test_reset_returns_count_to_zero(self, make_context):
        async def scenario():
            ctx = make_context()
            await ctx.store.set(StateKey.SURVEYS_SHOWN_TODAY.value, 7)
            quota = DailyQuota(ctx.store, 10)

            await quota.reset()

            assert await quota.count() == 0

        asyncio.run(scenario())

    def test_concurrent_acquires_never_overshoot(self, make_context):
        async def scenario():
            quota = DailyQuota(make_context().store, 3)

            results = await asyncio.gather(*[quota.try_acquire() for _ in range(8)])

            assert results.count(True) == 3
            assert await quota.count() == 3

        asyncio.run(scenario())


# =============================================================================
# TEST: INSTALL-ANCHORED RESET WINDOW
# =============================================================================

class TestNextResetSchedule:

    anchor = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def test_before_first_reset(self):
        delay, last_due = next_reset_schedule(self.anchor, self.anchor + timedelta(minutes=2), 5, 1440)

        assert delay == pytest.approx(3.0)
        assert last_due is None

    def test_after_first_reset_uses_anchor_not_midnight(self):
        now = self.anchor + timedelta(minutes=5, days=1, hours=1)

        delay, last_due = next_reset_schedule(self.anchor, now, 5, 1440)

        assert last_due == self.anchor + timedelta(minutes=5, days=1)
        assert delay == pytest.approx(23 * 60)

    def test_exactly_on_a_reset_boundary(self):
        now = self.anchor + timedelta(minutes=5)

        delay, last_due = next_reset_schedule(self.anchor, now, 5, 1440)

        assert last_due == now
        assert delay == pytest.approx(1440)
