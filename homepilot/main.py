"""
Main application entry point - FastAPI app instance and configuration.
Run with: uvicorn homepilot.main:app --reload
"""

from fastapi import FastAPI

from homepilot.core.config import settings
from homepilot.core.logging_config import configure_logging
from homepilot.routers import devices, intent

configure_logging()

# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# intent.router: /intent for voice command processing
# devices.router: /devices for the device list, sync, refresh and selection
app.include_router(intent.router)
app.include_router(devices.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Simple health check endpoint.

    Does NOT check bridge connectivity.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
