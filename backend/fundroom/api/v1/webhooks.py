"""Incoming vendor webhooks routed by host.

Requests arriving on a configured webhook host are rewritten by the entry
proxy to /api/webhooks/incoming<path>. Payload processing belongs to the
vendor integrations; this layer acknowledges receipt.
"""

import structlog
from fastapi import APIRouter, Request

from fundroom.core.responses import DataResponse

logger = structlog.get_logger()

router = APIRouter()


@router.post("/incoming/{path:path}", status_code=202)
async def receive_webhook(path: str, request: Request) -> DataResponse[dict]:
    """Acknowledge a webhook delivery."""
    logger.info(
        "webhook.received",
        source_path=f"/{path}",
        host=request.headers.get("host"),
        content_type=request.headers.get("content-type"),
    )
    return DataResponse(data={"received": True})
