from fastapi import APIRouter

from profile_enrichment.api.v1.endpoints import subjects

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(subjects.router, prefix="/subjects", tags=["Subjects"])

__all__ = ["api_router"]
