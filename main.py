"""
GBase Slides - slide image generation service.

Main entry point. Serves a websocket endpoint that analyses text into slides
and renders every slide through the rate-limited image generation queue,
streaming queue status and per-slide results back to the client.
"""

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

# Load environment variables
load_dotenv()

# Configure Logfire early in startup
from gbase_slides.utils.logfire_config import configure_logfire, instrument_app
configure_logfire()

from config.settings import get_settings
from gbase_slides.handlers.websocket import WebSocketHandler
from gbase_slides.utils.logger import setup_logger

logger = setup_logger(__name__)
settings = get_settings()

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# Global handler instance (reused across connections)
_handler_instance = None


def get_handler() -> WebSocketHandler:
    """Get or create the global WebSocket handler instance."""
    global _handler_instance
    if _handler_instance is None:
        _handler_instance = WebSocketHandler(settings=settings)
        logger.info("WebSocketHandler initialized")
    return _handler_instance


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting GBase Slides API...")

    if not settings.API_ENABLED:
        logger.warning("API_ENABLED is set to False - WebSocket connections will be rejected")
        yield
        return

    try:
        settings.validate_settings()
    except ValueError as e:
        logger.error(f"FATAL: {str(e)}")
        raise RuntimeError("Cannot start with invalid settings. See logs for details.")

    get_handler()
    logger.info(
        f"Image queue: interval={settings.MIN_CALL_INTERVAL_SECONDS}s, "
        f"transient retries={settings.IMAGE_MAX_TRANSIENT_RETRIES}, model={settings.IMAGE_MODEL}"
    )

    yield
    logger.info("Shutting down GBase Slides API...")


app = FastAPI(
    title="GBase Slides API",
    version=APP_VERSION,
    description="Turns documents into image-based slide decks through a rate-limited Gemini queue",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

instrument_app(app)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, session_id: str):
    """
    Handle WebSocket connections.

    Args:
        websocket: The WebSocket connection
        session_id: Client-chosen session identifier
    """
    if not settings.API_ENABLED:
        logger.warning(f"WebSocket connection rejected - API is disabled (session: {session_id})")
        await websocket.close(code=1013, reason="Service temporarily unavailable - API disabled")
        return

    if not session_id:
        logger.error("WebSocket connection attempted without session_id")
        await websocket.close(code=1008, reason="Missing required parameters")
        return

    try:
        await get_handler().handle_connection(websocket, session_id)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: session={session_id}")
    except Exception as e:
        logger.error(f"WebSocket error: session={session_id}, error={str(e)}", exc_info=True)


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy" if settings.API_ENABLED else "disabled",
        "api_enabled": settings.API_ENABLED,
        "service": "gbase-slides",
        "version": APP_VERSION,
        "environment": settings.APP_ENV,
        "image_model": settings.IMAGE_MODEL,
        "min_call_interval_seconds": settings.MIN_CALL_INTERVAL_SECONDS,
        "server_api_key": settings.has_default_api_key
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower()
    )
