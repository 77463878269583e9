"""
Health check endpoint.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from drivebot.context import AppContext
from drivebot.routes.dependencies import get_context

router = APIRouter()


@router.get("/health")
async def health_check(context: AppContext = Depends(get_context)):
    """Health check endpoint for monitoring."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "linked_users": context.sessions.linked_count(),
    }
