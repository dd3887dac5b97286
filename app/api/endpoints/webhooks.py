"""
Provider webhook endpoints.
"""
import json
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request

from app.core.config import settings
from app.core.exceptions import ValidationException
from app.core.logging import get_logger
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.webhook import ProviderEvent, RetryResult, WebhookBatchResult
from app.services.webhook_service import (
    WebhookService,
    get_webhook_service,
    verify_webhook_signature,
)
from .auth import get_current_user

logger = get_logger(__name__)
router = APIRouter()


@router.post("/sendgrid", response_model=ApiResponse[WebhookBatchResult])
async def sendgrid_webhook(
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
):
    """
    Receive a batch of SendGrid events.

    Unauthenticated; when a verification key is configured the request
    signature is checked against the raw body.
    """
    body = await request.body()

    if settings.sendgrid_webhook_public_key:
        verify_webhook_signature(body, request.headers, settings.sendgrid_webhook_public_key)

    try:
        events = json.loads(body or b"null")
    except ValueError:
        raise ValidationException("Webhook body is not valid JSON")

    if not isinstance(events, list):
        raise ValidationException("Invalid webhook payload: expected an array of events")

    result = await service.ingest_events(events)
    return ApiResponse(success=True, data=result, message="Webhook processed successfully")


@router.get("/events", response_model=ApiResponse[List[ProviderEvent]])
async def list_events(
    campaign_id: Optional[int] = Query(None, alias="campaignId"),
    event_type: Optional[str] = Query(None, alias="eventType"),
    processed: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    """Newest logged events for the user's campaigns."""
    events = await service.list_events(
        current_user.id,
        campaign_id=campaign_id,
        event_type=event_type,
        processed=processed,
    )
    return ApiResponse(success=True, data=[ProviderEvent.model_validate(e) for e in events])


@router.post("/events/{event_id}/retry", response_model=ApiResponse[RetryResult])
async def retry_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    result = await service.retry_event(event_id, current_user.id)

    message = "Event reprocessed successfully" if result.processed else "Event could not be processed"
    return ApiResponse(success=True, data=result, message=message)
