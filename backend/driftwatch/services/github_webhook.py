"""
GitHub webhook handling: signature verification and event routing.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from driftwatch.dtos.github import PullRequestEvent
from driftwatch.services.exceptions import InvalidWebhookPayloadError, ScanRateLimitError
from driftwatch.services.trigger_service import TriggerService

logger = logging.getLogger(__name__)

SCANNABLE_PR_ACTIONS = frozenset({"opened", "synchronize", "reopened"})


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check an `X-Hub-Signature-256` header with a constant-time compare."""
    if not signature or not secret:
        return False
    expected = "sha256=" + hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature.encode(), expected.encode())


def verify_with_rotation(
    raw_body: bytes, signature: Optional[str], secrets: Iterable[Optional[str]]
) -> bool:
    """Accept a signature made with any configured secret (current or previous)."""
    return any(
        verify_webhook_signature(raw_body, signature, secret)
        for secret in secrets
        if secret
    )


def parse_pull_request_event(payload: Dict[str, Any]) -> PullRequestEvent:
    """
    Raises:
        InvalidWebhookPayloadError: a required field is missing or malformed.
    """
    try:
        pull_request = payload["pull_request"]
        return PullRequestEvent(
            action=payload["action"],
            repo_id=str(payload["repository"]["id"]),
            pr_number=payload.get("number") or pull_request["number"],
            head_sha=pull_request["head"]["sha"],
            installation_id=payload["installation"]["id"],
        )
    except (KeyError, TypeError, ValidationError) as e:
        raise InvalidWebhookPayloadError(f"Malformed pull_request payload: {e!r}") from e


def handle_pull_request_event(
    trigger_service: TriggerService,
    payload: Dict[str, Any],
    delivery_id: Optional[str],
) -> Dict[str, Any]:
    """
    Route a pull_request event to the trigger service.

    Rate-limited events are acknowledged without scheduling work, so GitHub
    does not redeliver them.
    """
    event = parse_pull_request_event(payload)

    if event.action not in SCANNABLE_PR_ACTIONS:
        logger.info(f"[delivery={delivery_id}] Ignoring pull_request action {event.action}")
        return {"received": True, "scheduled": False, "reason": f"action {event.action} ignored"}

    try:
        scan_id = trigger_service.enqueue_pr_scan(
            repo_id=event.repo_id,
            pr_number=event.pr_number,
            head_sha=event.head_sha,
            installation_id=event.installation_id,
            delivery_id=delivery_id,
        )
    except ScanRateLimitError as e:
        logger.warning(f"[delivery={delivery_id}] {e}")
        return {"received": True, "scheduled": False, "reason": "rate_limited"}

    return {"received": True, "scheduled": True, "scan_id": scan_id}
