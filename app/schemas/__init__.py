"""
Pydantic schemas package.
"""
from .auth import LoginRequest, RegisterRequest, AuthResponse
from .user import User, UserUpdate, PasswordChangeRequest
from .template import Template, TemplateCreate, TemplateUpdate, TemplateDuplicate
from .campaign import (
    Campaign,
    CampaignCreate,
    CampaignDetail,
    CampaignSummary,
    PreviewRequest,
    Recipient,
    RecipientCreate,
    SendCampaignResult,
)
from .statistics import (
    CampaignStatisticsData,
    CampaignStatisticsResponse,
    StatisticsOverview,
    StatusBreakdown,
    SyncResponse,
    TimeframePoint,
    TimeframeResponse,
)
from .webhook import ProviderEvent, RetryResult, WebhookBatchResult
from .common import ApiResponse

__all__ = [
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "AuthResponse",

    # User
    "User",
    "UserUpdate",
    "PasswordChangeRequest",

    # Template
    "Template",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateDuplicate",

    # Campaign
    "Campaign",
    "CampaignCreate",
    "CampaignDetail",
    "CampaignSummary",
    "PreviewRequest",
    "Recipient",
    "RecipientCreate",
    "SendCampaignResult",

    # Statistics
    "CampaignStatisticsData",
    "CampaignStatisticsResponse",
    "StatisticsOverview",
    "StatusBreakdown",
    "SyncResponse",
    "TimeframePoint",
    "TimeframeResponse",

    # Webhooks
    "ProviderEvent",
    "RetryResult",
    "WebhookBatchResult",

    # Common
    "ApiResponse",
]
