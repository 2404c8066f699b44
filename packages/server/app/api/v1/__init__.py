"""
API v1 Router

Screen-facing endpoints: the public directory, profile self-service, and
the admin console.
"""

from fastapi import APIRouter
from . import admin, directory, profile

router = APIRouter()

router.include_router(directory.router, prefix="/directory", tags=["Directory"])
router.include_router(profile.router, prefix="/profile", tags=["Profile"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/directory/branches",
            "/directory/members",
            "/directory/map",
            "/profile",
            "/admin/metrics",
            "/admin/members",
            "/admin/branches",
        ],
    }
