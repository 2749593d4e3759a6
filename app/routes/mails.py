"""
Mail Routes - Process mails, read the latest code, browse the mailbox

Provides endpoints for:
- Running one extraction cycle
- Reading the most recently extracted code
- Proxying the upstream mail listing
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.core.code_cache import utc_now_iso
from app.core.relay_service import RelayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["mails"])

# Global relay service (shared with status routes)
relay_service: Optional[RelayService] = None


def set_relay_service(service: Optional[RelayService]) -> None:
    """
    Set the global relay service instance

    Args:
        service: RelayService instance
    """
    global relay_service
    relay_service = service


def _require_service() -> RelayService:
    if relay_service is None:
        raise HTTPException(
            status_code=503,
            detail="Service unavailable: Relay service not initialized",
        )
    return relay_service


# Response Models
class ExtractedCode(BaseModel):
    """One newly extracted code"""

    code: str
    template: str = Field(..., description="Name of the matching template")
    sender: str = Field(..., alias="from", description="Mail sender")
    subject: str

    model_config = {"populate_by_name": True}


class ProcessMailsResponse(BaseModel):
    """Result of one extraction cycle"""

    success: bool = True
    processed: int = Field(..., description="New codes extracted in this run")
    total_mails: int = Field(..., description="Mails returned by the upstream")
    filtered_mails: int = Field(..., description="Mails left after sender filter")
    results: List[ExtractedCode]


class LatestCodeResponse(BaseModel):
    """Most recently extracted code"""

    success: bool = True
    code: str
    source: str = "kv"
    timestamp: str


class MailListResponse(BaseModel):
    """Upstream mail listing"""

    success: bool = True
    data: Any


@router.get(
    "/process-mails",
    response_model=ProcessMailsResponse,
    response_model_by_alias=True,
)
async def process_mails() -> Dict[str, Any]:
    """
    Fetch the latest mails and extract verification codes

    Mails already seen on a previous run are skipped; only codes new to
    this run are returned.

    Returns:
        dict: {success, processed, total_mails, filtered_mails, results}

    Raises:
        ConfigurationError: WORKER_URL not configured (500)
        MailboxFetchError: Mail API returned an error (upstream status)
    """
    service = _require_service()
    result = await service.process_mails()
    return result.to_response()


@router.get(
    "/latest-code",
    response_model=LatestCodeResponse,
    responses={404: {"description": "No code available"}},
)
async def get_latest_code():
    """
    Get the most recently extracted verification code

    Returns:
        LatestCodeResponse: Cached code and when it was stored
        JSONResponse: 404 {success: false, code: null} when nothing is cached
    """
    service = _require_service()
    latest = await service.get_latest_code()

    if latest is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "code": None, "message": "No code available"},
        )

    return LatestCodeResponse(
        code=latest.code,
        timestamp=latest.timestamp or utc_now_iso(),
    )


@router.get("/get-mails", response_model=MailListResponse)
async def get_mails(
    limit: int = Query(10, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0, description="Page offset"),
    address: str = Query("", description="Filter by mailbox address"),
    keyword: str = Query("", description="Filter by keyword"),
) -> MailListResponse:
    """
    Proxy the upstream mail listing

    Returns:
        MailListResponse: {success: true, data: <upstream JSON>}
    """
    service = _require_service()
    data = await service.list_mails(
        limit=limit, offset=offset, address=address, keyword=keyword
    )
    return MailListResponse(data=data)
