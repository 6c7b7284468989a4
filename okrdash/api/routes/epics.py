"""
Epic Cache API Routes.

Cached epic analyses and the extra-epics summary for the current user.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from okrdash.api.deps import get_services, http_errors
from okrdash.api.schemas.epics import EpicCacheResponse, ExtraEpicsRequest, ExtraEpicsResponse
from okrdash.auth.session import UserSession, get_user_session
from okrdash.schemas.jira import EpicSummary
from okrdash.services.epic_cache import normalize_epic_key
from okrdash.services.registry import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["epics"])


@router.get("/epics/{epic_key}", response_model=EpicCacheResponse)
async def get_cached_epic(
    epic_key: str,
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> EpicCacheResponse:
    """Cached epic analysis, or a null entry on a miss."""
    entry = await services.epic_cache.load_epic_data(session, epic_key)
    return EpicCacheResponse(
        key=normalize_epic_key(epic_key) or epic_key,
        entry=entry.model_dump(mode="json", by_alias=True, exclude_unset=True) if entry else None,
    )


@router.put("/epics/{epic_key}", status_code=status.HTTP_204_NO_CONTENT)
async def put_cached_epic(
    epic_key: str,
    payload: Dict[str, Any] = Body(...),
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Response:
    """Cache an epic analysis. Best-effort: failures are logged, not reported."""
    await services.epic_cache.save_epic_data(session, epic_key, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/epics/{epic_key}/details")
async def get_epic_details(
    epic_key: str,
    force_refresh: bool = Query(False, description="Skip the cache and refetch from Jira"),
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Epic and children, served from cache or fetched from Jira."""
    with http_errors():
        try:
            data = await services.epic_analysis.get_epic_details(session, epic_key, force_refresh)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return data.model_dump(mode="json", by_alias=True, exclude_unset=True)


@router.get("/epics-summary/extra", response_model=ExtraEpicsResponse)
async def get_extra_epics(
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> ExtraEpicsResponse:
    epics = await services.epic_cache.load_extra_epics_data(session)
    last_updated = await services.epic_cache.extra_epics_last_updated(session) if epics is not None else None
    return ExtraEpicsResponse(epics=epics, last_updated=last_updated)


@router.put("/epics-summary/extra", status_code=status.HTTP_204_NO_CONTENT)
async def put_extra_epics(
    payload: List[Dict[str, Any]] = Body(...),
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> Response:
    """Replace the extra-epics summary. Best-effort like the epic cache."""
    await services.epic_cache.save_extra_epics_data(session, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/epics-summary/extra/refresh", response_model=List[EpicSummary])
async def refresh_extra_epics(
    payload: ExtraEpicsRequest,
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> List[EpicSummary]:
    """Summaries for the given epics; fetched from Jira when not cached or forced."""
    with http_errors():
        return await services.epic_analysis.get_extra_epics(
            session, payload.keys, force_refresh=payload.force_refresh
        )


@router.get("/objectives")
async def get_strategic_objectives(
    project_key: Optional[str] = Query(None, description="Defaults to the user's dashboard project"),
    session: UserSession = Depends(get_user_session),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    """Open epics of a Jira project."""
    with http_errors():
        issues = await services.epic_analysis.get_strategic_objectives(session, project_key)
    return [issue.to_document() for issue in issues]
