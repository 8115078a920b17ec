"""
API v1 package.

Contains versioned API routes for applicants, admin review and authentication.
"""

from fastapi import APIRouter

from src.api.v1 import admin, applicants, auth

router = APIRouter(tags=["v1"])
router.include_router(applicants.router)
router.include_router(admin.router)
router.include_router(auth.router)

__all__ = ["router"]
