"""
Webhook event schemas.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from .common import CamelModel


class ProviderEvent(CamelModel):
    id: int
    campaign_id: Optional[int] = None
    recipient_email: str
    event_type: str
    provider_message_id: Optional[str] = None
    provider_event_id: Optional[str] = None
    event_data: Dict[str, Any]
    processed: bool
    error_message: Optional[str] = None
    created_at: datetime


class WebhookBatchResult(CamelModel):
    received: int
    processed: int
    unmatched: int
    failed: int
    duplicates: int
    previews: int = 0


class RetryResult(CamelModel):
    event_id: int
    processed: bool
    outcome: str
