"""
System and global configuration API Routes.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from okrdash.api.deps import get_services, http_errors
from okrdash.services.global_config import GlobalConfig
from okrdash.services.registry import Services
from okrdash.services.system_config import SystemJiraConfig

router = APIRouter(tags=["config"])


def _mask(token: str) -> str:
    if not token:
        return ""
    return f"{'*' * max(len(token) - 4, 0)}{token[-4:]}"


@router.get("/system-config/jira")
async def get_system_jira_config(
    services: Services = Depends(get_services),
) -> Optional[Dict[str, Any]]:
    """System Jira config with the token masked; null if not configured."""
    with http_errors():
        config = await services.system_config.get_jira_config()
    if config is None:
        return None
    data = config.to_document()
    data["token"] = _mask(config.token)
    return data


@router.put("/system-config/jira")
async def put_system_jira_config(
    payload: SystemJiraConfig,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    with http_errors():
        version = await services.system_config.save_jira_config(payload)
    return {"status": "ok", "version": version}


@router.get("/config/ui", response_model=GlobalConfig)
async def get_global_ui_config(services: Services = Depends(get_services)) -> GlobalConfig:
    return await services.global_config.get()


@router.put("/config/ui", response_model=GlobalConfig)
async def put_global_ui_config(
    payload: GlobalConfig,
    services: Services = Depends(get_services),
) -> GlobalConfig:
    with http_errors():
        await services.global_config.save(payload)
    return payload
