"""
Mail Code Relay - Main Application Entry

Polls a mail worker API, extracts verification codes and relays them
"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import httpx

from app.config import Settings
from app.core.error_handlers import (
    general_exception_handler,
    http_exception_handler,
    httpx_exception_handler,
    relay_exception_handler,
    validation_exception_handler,
)
from app.core.errors import MailRelayError
from app.core.relay_service import RelayService
from app.routes import mails, status
from app.routes.status import VERSION

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# App metadata
app = FastAPI(
    title="Mail Code Relay",
    description="Verification code extraction from a mail worker API",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Register exception handlers
app.add_exception_handler(MailRelayError, relay_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(httpx.HTTPError, httpx_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Include routers
app.include_router(mails.router)
app.include_router(status.router)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("🚀 Starting Mail Code Relay...")

    settings = Settings.from_env()
    mails.set_relay_service(RelayService(settings))

    if not settings.is_mailbox_configured:
        logger.error("❌ WORKER_URL not configured - /api/process-mails will fail")
    if not settings.is_notifier_configured:
        logger.info("Telegram notifier disabled (TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID unset)")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Mail Code Relay",
        "version": VERSION,
        "status": "active",
        "docs": "/docs",
        "endpoints": {
            "process_mails": "/api/process-mails",
            "latest_code": "/api/latest-code",
            "get_mails": "/api/get-mails",
            "health": "/api/v1/status/health",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
    )
