"""
Shared fixtures: a fresh SQLite document store per test.
"""
import pytest

from okrdash.auth.session import UserSession
from okrdash.infra.db.session import create_session_factory, init_db
from okrdash.infra.db.document_store import DocumentStore


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{(tmp_path / 'okrdash-test.db').as_posix()}"


@pytest.fixture
async def store(database_url):
    engine, factory = create_session_factory(database_url)
    await init_db(engine)
    yield DocumentStore(factory)
    await engine.dispose()


@pytest.fixture
def alice():
    return UserSession(user_id="alice")


@pytest.fixture
def anonymous():
    return UserSession()


def make_issue(key, status="indeterminate", **fields):
    """Minimal Jira issue payload in REST shape."""
    return {
        "id": f"id-{key}",
        "key": key,
        "fields": {
            "summary": f"Summary of {key}",
            "status": {"name": status.title(), "statusCategory": {"key": status, "name": status}},
            **fields,
        },
    }
