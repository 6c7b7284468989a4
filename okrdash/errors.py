"""
Domain exceptions.

Services raise these; the API layer maps them onto HTTP status codes.
"""
from typing import Optional


class OkrDashError(Exception):
    """Base class for all okrdash errors."""


class NotAuthenticatedError(OkrDashError):
    """Operation requires a signed-in user."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class DocumentStoreError(OkrDashError):
    """The document store failed to read or write."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DocumentConflictError(DocumentStoreError):
    """A conditional write found a different version than expected."""

    def __init__(self, path: str, expected: int, actual: int):
        super().__init__(
            f"Version conflict on {path}: expected {expected}, found {actual}",
            path=path,
        )
        self.expected = expected
        self.actual = actual


class SettingsConflictError(OkrDashError):
    """A section update raced with another write to the same settings record."""

    def __init__(self, user_id: str, section: str):
        super().__init__(
            f"Settings for user {user_id} changed while updating '{section}'; reload and retry"
        )
        self.user_id = user_id
        self.section = section


class JiraError(OkrDashError):
    """Jira API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JiraNotConfiguredError(JiraError):
    """No usable Jira URL/email/token."""


class JiraNotFoundError(JiraError):
    """Requested issue does not exist in Jira."""
