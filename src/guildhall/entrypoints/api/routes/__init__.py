"""API route modules."""

from fastapi import APIRouter

from guildhall.entrypoints.api.routes.admin import router as admin_router

# Create main API router
api_router = APIRouter()

api_router.include_router(admin_router)

__all__ = ["api_router"]
