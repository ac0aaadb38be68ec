"""
Tests for the durable key-value State Store.
"""
import asyncio

from experience_sampling.services.host import StateChange, StateStore


class TestStateStore:

    def test_missing_key_returns_default(self, session_factory):
        async def scenario():
            store = StateStore(session_factory)
            assert await store.get("consent_status") is None
            assert await store.get("pending_responses", []) == []

        asyncio.run(scenario())

    def test_values_round_trip_json(self, session_factory):
        async def scenario():
            store = StateStore(session_factory)
            await store.set("pending_responses", [{"id": "a", "attempts": 2}])
            await store.set("surveys_shown_today", 4)

            assert await store.get("pending_responses") == [{"id": "a", "attempts": 2}]
            assert await store.get_many("surveys_shown_today", "consent_status") == {
                "surveys_shown_today": 4,
                "consent_status": None,
            }

        asyncio.run(scenario())

    def test_values_survive_a_new_store(self, session_factory):
        async def write():
            await StateStore(session_factory).set("participant_id", "abc")

        async def read():
            return await StateStore(session_factory).get("participant_id")

        asyncio.run(write())
        assert asyncio.run(read()) == "abc"

    def test_listeners_see_changes_only(self, session_factory):
        async def scenario():
            store = StateStore(session_factory)
            seen = []
            store.on_change(seen.append)

            await store.set("consent_status", "pending")
            await store.set("consent_status", "pending")
            await store.set("consent_status", "granted")

            assert seen == [
                StateChange("consent_status", None, "pending"),
                StateChange("consent_status", "pending", "granted"),
            ]

        asyncio.run(scenario())

    def test_unsubscribe_stops_notifications(self, session_factory):
        async def scenario():
            store = StateStore(session_factory)
            seen = []
            unsubscribe = store.on_change(seen.append)

            unsubscribe()
            unsubscribe()
            await store.set("setup_status", "completed")

            assert seen == []
            assert store.listener_count == 0

        asyncio.run(scenario())

    def test_set_default_keeps_existing_value(self, session_factory):
        async def scenario():
            store = StateStore(session_factory)
            assert await store.set_default("participant_id", "first") == "first"
            assert await store.set_default("participant_id", "second") == "first"

        asyncio.run(scenario())
