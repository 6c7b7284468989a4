"""
Tests for SettingsService: migration, merge-writes and section updates.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from okrdash.errors import DocumentStoreError, NotAuthenticatedError, SettingsConflictError
from okrdash.schemas.settings import UISettings
from okrdash.services.legacy_store import LegacyLocalStore
from okrdash.services.settings_service import (
    SettingsService,
    parse_refresh_interval,
    split_epic_keys,
)


@pytest.fixture
def service(store):
    return SettingsService(store)


class TestHelpers:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 30000),
            ("", 30000),
            ("60000", 60000),
            ("45000ms", 45000),
            ("abc", 30000),
            ("-5", 30000),
            ("0", 0),
        ],
    )
    def test_parse_refresh_interval(self, raw, expected):
        assert parse_refresh_interval(raw) == expected

    def test_split_epic_keys_drops_blank_entries(self):
        assert split_epic_keys("ION-1, ,ION-2,,") == ["ION-1", "ION-2"]
        assert split_epic_keys(None) == []


class TestLoadSettings:
    @pytest.mark.asyncio
    async def test_anonymous_returns_none_without_touching_store(self, anonymous):
        store = MagicMock()
        store.get = AsyncMock()
        service = SettingsService(store)

        assert await service.load_settings(anonymous) is None
        store.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_migration_with_defaults(self, service, store, alice):
        settings = await service.load_settings(alice)

        assert settings.user_id == "alice"
        assert settings.jira.url == "" and settings.jira.email == "" and settings.jira.token == ""
        assert settings.ui.refresh_interval == 30000
        assert settings.ui.theme == "system"
        assert settings.ui.custom_logo_url is None
        assert settings.epic_analysis.extra_epics == []
        assert settings.dashboard.project_key == "ION"
        assert settings.dashboard.selected_version == "ALL"
        assert settings.dashboard.selected_period == "ALL"
        assert settings.created_at is not None
        assert await store.get("user_settings/alice") is not None

    @pytest.mark.asyncio
    async def test_migration_from_legacy_values(self, service, store, alice):
        legacy = LegacyLocalStore({"refresh_interval": "60000", "jira_project_key": "ABC"})

        settings = await service.load_settings(alice, legacy)

        assert settings.ui.refresh_interval == 60000
        assert settings.dashboard.project_key == "ABC"
        assert settings.jira.model_dump() == {"url": "", "email": "", "token": ""}
        stored = await store.get("user_settings/alice")
        assert stored.data["ui"]["refreshInterval"] == 60000
        assert stored.data["dashboard"]["projectKey"] == "ABC"

    @pytest.mark.asyncio
    async def test_migration_copies_every_legacy_key(self, service, alice):
        legacy = LegacyLocalStore(
            {
                "jira_url": "https://acme.atlassian.net",
                "jira_email": "a@acme.io",
                "jira_token": "tok",
                "custom_logo_url": "https://acme.io/logo.png",
                "gemini_api_key": "gem",
                "default_epic_key": "ION-7",
                "extra_epics": "ION-1,ION-2",
            }
        )

        settings = await service.load_settings(alice, legacy)

        assert settings.jira.url == "https://acme.atlassian.net"
        assert settings.jira.token == "tok"
        assert settings.ui.custom_logo_url == "https://acme.io/logo.png"
        assert settings.ai.gemini_api_key == "gem"
        assert settings.epic_analysis.default_epic_key == "ION-7"
        assert settings.epic_analysis.extra_epics == ["ION-1", "ION-2"]

    @pytest.mark.asyncio
    async def test_second_load_skips_migration(self, service, alice):
        first = await service.load_settings(alice, LegacyLocalStore({"refresh_interval": "60000"}))
        second = await service.load_settings(alice, LegacyLocalStore({"refresh_interval": "10"}))

        assert second == first
        assert second.ui.refresh_interval == 60000

    @pytest.mark.asyncio
    async def test_store_failure_returns_none(self, alice):
        store = MagicMock()
        store.get = AsyncMock(side_effect=DocumentStoreError("offline"))
        service = SettingsService(store)

        assert await service.load_settings(alice) is None


class TestSaveSettings:
    @pytest.mark.asyncio
    async def test_anonymous_raises(self, service, anonymous):
        with pytest.raises(NotAuthenticatedError):
            await service.save_settings(anonymous, {"ui": {"theme": "dark"}})

    @pytest.mark.asyncio
    async def test_partial_save_replaces_only_given_fields(self, service, alice):
        before = await service.load_settings(alice)

        await service.save_settings(
            alice, {"ui": {"refreshInterval": 5000, "theme": "dark"}}
        )
        after = await service.load_settings(alice)

        assert after.ui.refresh_interval == 5000
        assert after.ui.theme == "dark"
        assert after.jira == before.jira
        assert after.dashboard == before.dashboard
        assert after.epic_analysis == before.epic_analysis
        assert after.created_at == before.created_at
        assert after.updated_at > before.updated_at

    @pytest.mark.asyncio
    async def test_partial_section_keeps_unmentioned_fields(self, service, alice):
        legacy = LegacyLocalStore(
            {"refresh_interval": "60000", "custom_logo_url": "https://acme.io/logo.png"}
        )
        await service.load_settings(alice, legacy)

        await service.save_settings(alice, {"ui": {"theme": "dark"}})
        settings = await service.load_settings(alice)

        assert settings.ui.theme == "dark"
        assert settings.ui.refresh_interval == 60000
        assert settings.ui.custom_logo_url == "https://acme.io/logo.png"

    @pytest.mark.asyncio
    async def test_save_then_load_round_trips(self, service, alice):
        await service.save_settings(
            alice, {"jira": {"url": "https://mine.atlassian.net", "email": "", "token": ""}}
        )

        settings = await service.load_settings(alice)

        assert settings.jira.url == "https://mine.atlassian.net"
        assert settings.jira.email == ""

    @pytest.mark.asyncio
    async def test_user_id_and_updated_at_are_stamped(self, service, store, alice):
        await service.load_settings(alice)

        await service.save_settings(alice, {"userId": "mallory", "updatedAt": "1999-01-01T00:00:00"})

        stored = (await store.get("user_settings/alice")).data
        assert stored["userId"] == "alice"
        assert not stored["updatedAt"].startswith("1999")

    @pytest.mark.asyncio
    async def test_updated_at_strictly_increases(self, service, alice):
        await service.load_settings(alice)
        stamps = []
        for theme in ("dark", "light", "dark"):
            await service.save_settings(alice, {"ui": {"theme": theme}})
            stamps.append((await service.load_settings(alice)).updated_at)

        assert stamps[0] < stamps[1] < stamps[2]

    @pytest.mark.asyncio
    async def test_unknown_top_level_field_rejected(self, service, alice):
        with pytest.raises(ValueError):
            await service.save_settings(alice, {"notASection": {}})

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, alice):
        store = MagicMock()
        store.set = AsyncMock(side_effect=DocumentStoreError("offline"))
        service = SettingsService(store)

        with pytest.raises(DocumentStoreError):
            await service.save_settings(alice, {"ui": {"theme": "dark"}})


class TestSectionUpdates:
    @pytest.mark.asyncio
    async def test_update_ui_keeps_other_fields(self, service, alice):
        await service.load_settings(alice)

        merged = await service.update_ui_settings(alice, {"theme": "dark"})
        settings = await service.load_settings(alice)

        assert merged.theme == "dark"
        assert settings.ui.theme == "dark"
        assert settings.ui.refresh_interval == 30000

    @pytest.mark.asyncio
    async def test_update_accepts_models(self, service, alice):
        await service.update_ui_settings(alice, UISettings(theme="light"))
        settings = await service.load_settings(alice)
        assert settings.ui.theme == "light"

    @pytest.mark.asyncio
    async def test_update_migrates_when_absent(self, service, store, alice):
        await service.update_dashboard_settings(alice, {"selectedVersion": "1.2"})

        stored = (await store.get("user_settings/alice")).data
        assert stored["dashboard"] == {
            "projectKey": "ION",
            "selectedVersion": "1.2",
            "selectedPeriod": "ALL",
        }

    @pytest.mark.asyncio
    async def test_each_helper_targets_its_section(self, service, alice):
        await service.update_jira_settings(alice, {"url": "https://x.atlassian.net"})
        await service.update_ai_settings(alice, {"geminiApiKey": "g"})
        await service.update_epic_analysis_settings(alice, {"extraEpics": ["ION-3"]})

        settings = await service.load_settings(alice)
        assert settings.jira.url == "https://x.atlassian.net"
        assert settings.ai.gemini_api_key == "g"
        assert settings.epic_analysis.extra_epics == ["ION-3"]

    @pytest.mark.asyncio
    async def test_unknown_section_rejected(self, service, alice):
        with pytest.raises(ValueError):
            await service.update_section(alice, "billing", {})

    @pytest.mark.asyncio
    async def test_anonymous_raises(self, service, anonymous):
        with pytest.raises(NotAuthenticatedError):
            await service.update_ui_settings(anonymous, {"theme": "dark"})

    @pytest.mark.asyncio
    async def test_concurrent_write_raises_conflict_and_is_kept(self, service, store, alice):
        await service.load_settings(alice)
        real_get = store.get

        async def racing_get(path):
            snapshot = await real_get(path)
            # Another writer lands between our read and our write
            await store.set(path, {"dashboard": {"projectKey": "OTHER"}}, merge=True)
            return snapshot

        store.get = racing_get
        with pytest.raises(SettingsConflictError):
            await service.update_ui_settings(alice, {"theme": "dark"})
        store.get = real_get

        stored = (await store.get("user_settings/alice")).data
        assert stored["dashboard"]["projectKey"] == "OTHER"
        assert stored["ui"]["theme"] == "system"
