"""
Tests for the legacy localStorage snapshot and the session value.
"""
import json

import pytest

from okrdash.auth.session import ANONYMOUS, UserSession
from okrdash.errors import NotAuthenticatedError
from okrdash.services.legacy_store import LegacyLocalStore


class TestLegacyLocalStore:
    def test_values_are_strings_and_none_dropped(self):
        legacy = LegacyLocalStore({"refresh_interval": 60000, "jira_url": None})
        assert legacy["refresh_interval"] == "60000"
        assert "jira_url" not in legacy
        assert len(legacy) == 1

    def test_text_treats_empty_as_missing(self):
        legacy = LegacyLocalStore({"jira_url": ""})
        assert legacy.text("jira_url") is None
        assert legacy.text("never_set") is None

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "ls.json"
        path.write_text(json.dumps({"jira_project_key": "ABC"}))
        assert LegacyLocalStore.from_json_file(path).text("jira_project_key") == "ABC"

    def test_from_json_file_requires_object(self, tmp_path):
        path = tmp_path / "ls.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            LegacyLocalStore.from_json_file(path)


class TestUserSession:
    def test_anonymous(self):
        assert not ANONYMOUS.is_authenticated
        with pytest.raises(NotAuthenticatedError):
            ANONYMOUS.require_user()

    def test_authenticated(self):
        session = UserSession(user_id="alice")
        assert session.is_authenticated
        assert session.require_user() == "alice"
