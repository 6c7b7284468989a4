"""
Legacy Local Store

Read-only snapshot of the browser's localStorage, the only source the
settings migration reads from. Values are strings, exactly as the browser
stored them.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

# Keys read during migration
JIRA_URL = "jira_url"
JIRA_EMAIL = "jira_email"
JIRA_TOKEN = "jira_token"
CUSTOM_LOGO_URL = "custom_logo_url"
REFRESH_INTERVAL = "refresh_interval"
GEMINI_API_KEY = "gemini_api_key"
DEFAULT_EPIC_KEY = "default_epic_key"
EXTRA_EPICS = "extra_epics"
JIRA_PROJECT_KEY = "jira_project_key"

LEGACY_KEYS = (
    JIRA_URL,
    JIRA_EMAIL,
    JIRA_TOKEN,
    CUSTOM_LOGO_URL,
    REFRESH_INTERVAL,
    GEMINI_API_KEY,
    DEFAULT_EPIC_KEY,
    EXTRA_EPICS,
    JIRA_PROJECT_KEY,
)


class LegacyLocalStore(Mapping[str, str]):
    """Immutable string-to-string view of a localStorage export."""

    def __init__(self, values: Optional[Mapping[str, object]] = None):
        self._values: Dict[str, str] = {}
        for key, value in (values or {}).items():
            if value is None:
                continue
            self._values[str(key)] = value if isinstance(value, str) else str(value)

    @classmethod
    def from_json_file(cls, path: Path) -> "LegacyLocalStore":
        """Load a ``{"key": "value"}`` JSON export of localStorage."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        logger.info(f"[LegacyStore] Loaded {len(data)} keys from {path}")
        return cls(data)

    def text(self, key: str) -> Optional[str]:
        """Value for ``key``, or None when missing or empty (localStorage || fallback)."""
        value = self._values.get(key)
        return value if value else None

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"<LegacyLocalStore keys={sorted(self._values)}>"


EMPTY_LEGACY_STORE = LegacyLocalStore()
