"""
Tests for the best-effort epic cache.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from okrdash.errors import DocumentStoreError
from okrdash.schemas.jira import EpicSummary
from okrdash.services.epic_cache import EpicCacheService, normalize_epic_key
from tests.conftest import make_issue


@pytest.fixture
def cache(store):
    return EpicCacheService(store)


@pytest.fixture
def epic_payload():
    return {
        "epic": make_issue("ABC-1", customfield_99999={"team": "core"}),
        "children": [make_issue("ABC-2", "done"), make_issue("ABC-3")],
    }


def failing_store():
    store = MagicMock()
    store.get = AsyncMock(side_effect=DocumentStoreError("offline"))
    store.set = AsyncMock(side_effect=DocumentStoreError("offline"))
    return store


class TestNormalizeEpicKey:
    def test_uppercases_and_strips(self):
        assert normalize_epic_key("  abc-1 ") == "ABC-1"

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_blank_is_none(self, key):
        assert normalize_epic_key(key) is None


class TestEpicData:
    @pytest.mark.asyncio
    async def test_save_lowercase_load_uppercase(self, cache, store, alice, epic_payload):
        await cache.save_epic_data(alice, "abc-1", epic_payload)

        entry = await cache.load_epic_data(alice, "ABC-1")

        assert entry is not None
        assert entry.epic.key == "ABC-1"
        assert [c.key for c in entry.children] == ["ABC-2", "ABC-3"]
        assert entry.saved_by == "alice"
        assert entry.last_updated is not None
        assert await store.get("user_settings/alice/epics/ABC-1") is not None

    @pytest.mark.asyncio
    async def test_unknown_fields_round_trip(self, cache, store, alice, epic_payload):
        await cache.save_epic_data(alice, "ABC-1", epic_payload)

        stored = (await store.get("user_settings/alice/epics/ABC-1")).data
        assert stored["epic"] == epic_payload["epic"]
        assert stored["children"] == epic_payload["children"]

    @pytest.mark.asyncio
    async def test_save_overwrites_previous_entry(self, cache, alice, epic_payload):
        await cache.save_epic_data(alice, "ABC-1", epic_payload)
        await cache.save_epic_data(alice, "ABC-1", {"epic": make_issue("ABC-1"), "children": []})

        entry = await cache.load_epic_data(alice, "abc-1")
        assert entry.children == []

    @pytest.mark.asyncio
    async def test_never_saved_key_is_none(self, cache, alice):
        assert await cache.load_epic_data(alice, "ION-404") is None

    @pytest.mark.asyncio
    async def test_entries_are_per_user(self, cache, alice, epic_payload):
        from okrdash.auth.session import UserSession

        await cache.save_epic_data(alice, "ABC-1", epic_payload)
        assert await cache.load_epic_data(UserSession(user_id="bob"), "ABC-1") is None

    @pytest.mark.asyncio
    async def test_empty_key_or_anonymous_does_not_write(self, alice, anonymous, epic_payload):
        store = MagicMock()
        store.set = AsyncMock()
        cache = EpicCacheService(store)

        await cache.save_epic_data(alice, "", epic_payload)
        await cache.save_epic_data(alice, "   ", epic_payload)
        await cache.save_epic_data(anonymous, "ABC-1", epic_payload)

        store.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_anonymous_or_empty_key_load_is_none(self, cache, alice, anonymous):
        assert await cache.load_epic_data(anonymous, "ABC-1") is None
        assert await cache.load_epic_data(alice, "") is None

    @pytest.mark.asyncio
    async def test_store_failures_are_swallowed(self, alice, epic_payload):
        cache = EpicCacheService(failing_store())

        await cache.save_epic_data(alice, "ABC-1", epic_payload)
        assert await cache.load_epic_data(alice, "ABC-1") is None

    @pytest.mark.asyncio
    async def test_snapshot_without_key_is_kept(self, cache, alice):
        child = {"fields": {"summary": "Imported without a key"}}
        await cache.save_epic_data(alice, "ABC-1", {"epic": make_issue("ABC-1"), "children": [child]})

        entry = await cache.load_epic_data(alice, "ABC-1")

        assert entry is not None
        assert entry.children[0].key is None
        assert entry.children[0].fields.summary == "Imported without a key"

    @pytest.mark.asyncio
    async def test_malformed_payload_is_swallowed(self, cache, alice, caplog):
        await cache.save_epic_data(alice, "ABC-1", {"children": "not a list"})
        assert await cache.load_epic_data(alice, "ABC-1") is None
        assert any(
            r.levelname == "WARNING" and "Dropped invalid epic snapshot" in r.message
            for r in caplog.records
        )


class TestExtraEpics:
    @pytest.mark.asyncio
    async def test_empty_list_is_distinct_from_absent(self, cache, alice):
        assert await cache.load_extra_epics_data(alice) is None

        await cache.save_extra_epics_data(alice, [])

        assert await cache.load_extra_epics_data(alice) == []

    @pytest.mark.asyncio
    async def test_save_and_load_summaries(self, cache, store, alice):
        await cache.save_extra_epics_data(
            alice,
            [
                EpicSummary(key="ION-1", progress=50, total_children=2, done_children=1),
                {"key": "ION-2", "timeSpent": 3600, "owner": "team-a"},
            ],
        )

        epics = await cache.load_extra_epics_data(alice)

        assert [e.key for e in epics] == ["ION-1", "ION-2"]
        assert epics[0].done_children == 1
        assert epics[1].time_spent == 3600
        stored = (await store.get("user_settings/alice/epics_summary/extra_epics")).data
        assert stored["epics"][1]["owner"] == "team-a"
        assert await cache.extra_epics_last_updated(alice) == stored["lastUpdated"]

    @pytest.mark.asyncio
    async def test_anonymous(self, cache, anonymous):
        await cache.save_extra_epics_data(anonymous, [])
        assert await cache.load_extra_epics_data(anonymous) is None
        assert await cache.extra_epics_last_updated(anonymous) is None

    @pytest.mark.asyncio
    async def test_store_failures_are_swallowed(self, alice):
        cache = EpicCacheService(failing_store())

        await cache.save_extra_epics_data(alice, [])
        assert await cache.load_extra_epics_data(alice) is None
        assert await cache.extra_epics_last_updated(alice) is None
