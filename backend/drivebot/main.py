"""
FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from drivebot.config import get_settings
from drivebot.context import AppContext, build_context
from drivebot.routes import auth, health, interactions
from drivebot.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the API.
    
    The context (and with it settings validation) is created at startup,
    so a misconfigured process fails to boot instead of running with an
    insecure key.
    
    Args:
        context: Pre-built context, mainly for tests
    """
    setup_logging(get_settings().log_level)
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.context = context or build_context()
        logger.info("Drive Bot API started")
        yield
        logger.info("Drive Bot API stopped")
    
    app = FastAPI(
        title="Drive Bot",
        description="Chat bot interaction backend for Google Drive and web search",
        version="1.0.0",
        lifespan=lifespan,
    )
    
    # Include routers
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(interactions.router, prefix="/api", tags=["Interactions"])
    
    @app.get("/")
    async def root():
        """Root endpoint - points to docs."""
        return {
            "message": "Drive Bot API",
            "docs": "/docs",
            "health": "/api/health",
        }
    
    return app


app = create_app()
