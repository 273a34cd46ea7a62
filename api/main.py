"""
Main FastAPI application entry point.

Responsibilities:
- Initialize FastAPI app
- Configure CORS
- Mount WebSocket endpoint
- Include routers
- Create and tear down the activity feed service
"""
from __future__ import annotations

import logging
import os
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import activities, credentials, notifications
from api.websockets import activities_websocket
from config import log_missing_env_vars, settings
from services.activity_feed import ActivityFeedService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    stream=sys.stdout,
)
# httpx logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

app = FastAPI(title="Activity Feed API", version="1.0.0")

# CORS configuration - allow frontend origins
def _normalize_origin(origin: str) -> str:
    """Normalize origin values for robust CORS checks."""
    return origin.strip().rstrip("/")


cors_origins: list[str] = [
    "http://localhost:5173",  # Vite dev server
    "http://localhost:3000",
    settings.FRONTEND_URL,
]

# Add production frontend URL from environment (if different)
frontend_url = os.environ.get("FRONTEND_URL")
if frontend_url:
    cors_origins.append(frontend_url)

allowed_origins = {_normalize_origin(origin) for origin in cors_origins if origin}


def get_cors_headers(origin: str | None) -> dict[str, str]:
    """Return CORS headers if origin is allowed."""
    normalized_origin = _normalize_origin(origin) if origin else None
    if normalized_origin and normalized_origin in allowed_origins:
        return {
            "Access-Control-Allow-Origin": normalized_origin,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "*",
        }
    return {}


app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler to ensure CORS headers on all errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions with CORS headers."""
    origin = request.headers.get("origin")
    cors_headers = get_cors_headers(origin)
    logging.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
        headers=cors_headers,
    )


# Routes
app.include_router(activities.router, prefix="/api/activities", tags=["activities"])
app.include_router(credentials.router, prefix="/api/credentials", tags=["credentials"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

# WebSocket - live feed subscription
app.add_api_websocket_route("/ws/activities", activities_websocket)


@app.on_event("startup")
async def startup() -> None:
    """Create the feed service; credentials are loaded from storage."""
    log_missing_env_vars(logging.getLogger("config"))
    if getattr(app.state, "activity_feed", None) is None:
        app.state.activity_feed = ActivityFeedService.from_settings(settings)
    logging.info("Activity feed service ready")


@app.on_event("shutdown")
async def shutdown() -> None:
    """Stop polling on shutdown."""
    feed: ActivityFeedService | None = getattr(app.state, "activity_feed", None)
    if feed is not None:
        logging.info("Shutting down, stopping activity polling...")
        await feed.aclose()


@app.get("/")
async def root_health_check() -> dict[str, str]:
    """Root endpoint exposing the health check payload."""
    logging.info("Root health check requested")
    return await health_check()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    logging.info("Health check requested")
    return {"status": "ok"}
