"""
Health Check Endpoints
"""
from fastapi import APIRouter

from okrdash import __version__

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__, "service": "okrdash"}
