"""
Campaign endpoints.
"""
from typing import List
from fastapi import APIRouter, Depends, status

from app.core.logging import get_logger
from app.models.user import User
from app.schemas.campaign import (
    Campaign,
    CampaignCreate,
    CampaignDetail,
    CampaignSummary,
    PreviewRequest,
    SendCampaignResult,
)
from app.schemas.common import ApiResponse
from app.services.campaign_service import CampaignService, get_campaign_service
from .auth import get_current_user

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=ApiResponse[List[CampaignSummary]])
async def list_campaigns(
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    """List the user's campaigns, newest first."""
    campaigns = await service.list_campaigns(current_user.id)
    return ApiResponse(success=True, data=campaigns)


@router.get("/{campaign_id}", response_model=ApiResponse[CampaignDetail])
async def get_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    detail = await service.get_campaign_detail(campaign_id, current_user.id)
    return ApiResponse(success=True, data=detail)


@router.post("", response_model=ApiResponse[Campaign], status_code=status.HTTP_201_CREATED)
async def create_campaign(
    request: CampaignCreate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    """Create a draft campaign with its recipient list."""
    campaign = await service.create_campaign(current_user.id, request)
    return ApiResponse(
        success=True,
        data=Campaign.model_validate(campaign),
        message="Campaign created successfully",
    )


@router.delete("/{campaign_id}", response_model=ApiResponse[dict])
async def delete_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    await service.delete_campaign(campaign_id, current_user.id)
    return ApiResponse(success=True, data={}, message="Campaign deleted successfully")


@router.post("/{campaign_id}/send", response_model=ApiResponse[SendCampaignResult])
async def send_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    """Dispatch a draft campaign to its pending recipients."""
    result = await service.send_campaign(campaign_id, current_user.id)

    message = "Campaign sent successfully"
    if result.failed_count:
        message = f"Campaign sent to {result.sent_count} recipients, {result.failed_count} failed"

    return ApiResponse(success=True, data=result, message=message)


@router.post("/{campaign_id}/preview", response_model=ApiResponse[dict])
async def preview_campaign(
    campaign_id: int,
    request: PreviewRequest,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    """Send a test copy of the campaign to one address."""
    result = await service.preview_campaign(campaign_id, current_user.id, request.email)
    return ApiResponse(
        success=True,
        data={"email": result.email, "messageId": result.message_id},
        message="Test email sent successfully",
    )
