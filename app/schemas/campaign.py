"""
Campaign and recipient schemas.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import Field, EmailStr

from .common import CamelModel


CampaignStatus = Literal["draft", "sending", "sent", "failed"]
RecipientStatus = Literal["pending", "sent", "delivered", "bounced", "failed", "unsubscribed", "spam"]


class RecipientCreate(CamelModel):
    email: str = Field(..., min_length=3, max_length=255, description="Recipient email address")
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


class CampaignCreate(CamelModel):
    """Campaign creation request. Field presence is checked by the service."""
    name: Optional[str] = Field(None, max_length=255)
    subject: Optional[str] = Field(None, max_length=500)
    html_content: Optional[str] = None
    text_content: Optional[str] = None
    template_id: Optional[int] = None
    recipients: List[RecipientCreate] = Field(default_factory=list)


class PreviewRequest(CamelModel):
    email: EmailStr = Field(..., description="Address that receives the test copy")


class Recipient(CamelModel):
    id: int
    campaign_id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    status: RecipientStatus
    provider_message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    bounced_at: Optional[datetime] = None
    created_at: datetime


class Campaign(CamelModel):
    id: int
    user_id: int
    template_id: Optional[int] = None
    name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None
    status: CampaignStatus
    sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class CampaignSummary(Campaign):
    """Campaign list entry."""
    template_name: Optional[str] = None
    recipient_count: int = 0
    sent_count: int = 0


class CampaignDetail(CamelModel):
    campaign: CampaignSummary
    recipients: List[Recipient]


class SendCampaignResult(CamelModel):
    campaign_id: int
    status: CampaignStatus
    sent_count: int
    failed_count: int
