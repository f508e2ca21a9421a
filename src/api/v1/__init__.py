"""
API v1 package.

Contains versioned API routes for the land registry API.
"""

from fastapi import APIRouter

from src.api.v1.auth import router as auth_router
from src.api.v1.properties import router as properties_router
from src.api.v1.users import router as users_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(properties_router)
router.include_router(users_router)

__all__ = ["router"]
