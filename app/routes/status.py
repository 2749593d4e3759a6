"""
Status Routes - API endpoints for service health

Provides endpoints for:
- Health checks
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.routes import mails

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/status", tags=["status"])

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(..., description="Service status (healthy/degraded)")
    version: str = Field(..., description="API version")
    mailbox_configured: bool = Field(..., description="WORKER_URL is set")
    notifier_enabled: bool = Field(..., description="Telegram notifier is configured")
    store: str = Field(..., description="Key-value store backend")
    templates: int = Field(..., description="Number of extraction templates")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint

    Returns:
        HealthResponse: Service health information

    Status determination:
    - healthy: mailbox endpoint configured
    - degraded: WORKER_URL missing, process-mails will fail
    """
    service = mails.relay_service
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="Service unavailable: Relay service not initialized",
        )

    info = service.get_status()

    return HealthResponse(
        status="healthy" if info["mailbox_configured"] else "degraded",
        version=VERSION,
        mailbox_configured=info["mailbox_configured"],
        notifier_enabled=info["notifier_enabled"],
        store=info["store"],
        templates=info["templates"],
    )
