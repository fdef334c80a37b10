"""Health check endpoints."""

from fastapi import APIRouter

from app.core.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check if the API is running."""
    return {"status": "healthy", "message": f"{get_settings().app_name} is running"}


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": get_settings().app_name,
        "version": "1.0.0",
        "description": "Task management API: authentication and session lifecycle",
    }
