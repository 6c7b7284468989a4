"""
User Session

Explicit "who is calling" value passed into every persistence call. An
anonymous session (``user_id is None``) is valid; each service decides
whether that means "nothing to do" or an error.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from okrdash.errors import NotAuthenticatedError


@dataclass(frozen=True)
class UserSession:
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def require_user(self) -> str:
        """Return the user id or raise NotAuthenticatedError."""
        if not self.user_id:
            raise NotAuthenticatedError()
        return self.user_id


ANONYMOUS = UserSession()


async def get_user_session(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id")
) -> UserSession:
    """FastAPI dependency: session for the user named in the X-User-Id header.

    The header is set by the authenticating front door; a missing or blank
    header yields an anonymous session.
    """
    if x_user_id is None or not x_user_id.strip():
        return ANONYMOUS
    return UserSession(user_id=x_user_id.strip())
