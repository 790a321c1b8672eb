"""
Health check endpoint.
"""

from fastapi import APIRouter

from storefront.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "verification_store": settings.VERIFICATION_STORE_BACKEND,
        "notifier": settings.VERIFICATION_NOTIFIER
    }
