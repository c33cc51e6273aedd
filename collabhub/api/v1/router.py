"""
API v1 router assembly.

Authentication is handled per-endpoint: browse and open-project detail are
public, everything else depends on ``get_current_principal``.
"""

from fastapi import APIRouter

from collabhub.api.v1.endpoints import (
    admin,
    auth,
    milestones,
    organizations,
    projects,
    researchers,
    users,
)

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(organizations.router)
api_router.include_router(researchers.router)
api_router.include_router(projects.router)
api_router.include_router(milestones.router)
api_router.include_router(admin.router)
