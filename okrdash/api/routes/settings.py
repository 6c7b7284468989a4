"""
Settings API Routes.

Per-user settings stored at user_settings/{userId}.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from okrdash.api.deps import get_services, http_errors
from okrdash.api.schemas.settings import LegacyLoadRequest, SectionName
from okrdash.auth.session import UserSession, get_user_session
from okrdash.services.legacy_store import LegacyLocalStore
from okrdash.services.registry import Services

router = APIRouter(prefix="/settings", tags=["settings"])


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=e.errors(include_url=False, include_context=False),
    )


@router.get("")
async def get_settings(
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Optional[Dict[str, Any]]:
    """Get settings for the current user (null when unavailable)."""
    settings = await services.settings.load_settings(session)
    return settings.to_document() if settings else None


@router.post("/load")
async def load_settings(
    payload: LegacyLoadRequest,
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Optional[Dict[str, Any]]:
    """Load settings, migrating from the posted localStorage snapshot on first use."""
    legacy = LegacyLocalStore(payload.local_storage)
    settings = await services.settings.load_settings(session, legacy)
    return settings.to_document() if settings else None


@router.put("")
async def save_settings(
    payload: Dict[str, Any] = Body(...),
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Optional[Dict[str, Any]]:
    """Merge-write top-level settings fields; returns the stored record."""
    with http_errors():
        try:
            await services.settings.save_settings(session, payload)
        except ValidationError as e:
            raise _validation_error(e) from e
    settings = await services.settings.load_settings(session)
    return settings.to_document() if settings else None


@router.patch("/{section}")
async def update_section(
    section: SectionName,
    payload: Dict[str, Any] = Body(...),
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Shallow-merge fields into one settings section."""
    with http_errors():
        try:
            merged = await services.settings.update_section(session, section.attribute, payload)
        except ValidationError as e:
            raise _validation_error(e) from e
    return {section.value: merged.model_dump(mode="json", by_alias=True)}
