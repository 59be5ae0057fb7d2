"""
GitHub webhook endpoint.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from driftwatch.api.deps import get_trigger_service
from driftwatch.config import settings
from driftwatch.core.tracing import TracingContext
from driftwatch.services.exceptions import InvalidWebhookPayloadError
from driftwatch.services.github_webhook import handle_pull_request_event, verify_with_rotation
from driftwatch.services.trigger_service import TriggerService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/github")
async def github_webhook(
    request: Request,
    x_github_event: Optional[str] = Header(None),
    x_github_delivery: Optional[str] = Header(None),
    x_hub_signature_256: Optional[str] = Header(None),
    trigger_service: TriggerService = Depends(get_trigger_service),
):
    """Verify and route a GitHub delivery."""
    if x_github_delivery:
        TracingContext.set(correlation_id=x_github_delivery)
    TracingContext.get_or_create_correlation_id()

    raw_body = await request.body()

    if not verify_with_rotation(
        raw_body,
        x_hub_signature_256,
        (settings.GITHUB_WEBHOOK_SECRET, settings.GITHUB_WEBHOOK_SECRET_OLD),
    ):
        logger.warning(f"[delivery={x_github_delivery}] Rejected webhook with bad signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Malformed JSON payload")

    if x_github_event == "pull_request":
        try:
            return handle_pull_request_event(trigger_service, payload, x_github_delivery)
        except InvalidWebhookPayloadError as e:
            logger.warning(f"[delivery={x_github_delivery}] {e}")
            raise HTTPException(status_code=400, detail="Malformed pull_request payload")

    logger.info(f"[delivery={x_github_delivery}] Ignoring {x_github_event} event")
    return {"received": True, "scheduled": False}
