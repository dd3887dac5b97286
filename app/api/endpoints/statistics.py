"""
Statistics endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.core.exceptions import ValidationException
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.statistics import (
    CampaignStatisticsResponse,
    StatisticsOverview,
    SyncResponse,
    TimeframeResponse,
)
from app.services.statistics_service import StatisticsService, get_statistics_service
from app.utils.validators import parse_iso_date
from .auth import get_current_user

router = APIRouter()


@router.get("/campaign/{campaign_id}", response_model=ApiResponse[CampaignStatisticsResponse])
async def get_campaign_statistics(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: StatisticsService = Depends(get_statistics_service),
):
    """Recompute and return a campaign's counts, rates and recipients."""
    data = await service.get_campaign_statistics(campaign_id, current_user.id)
    return ApiResponse(success=True, data=data)


@router.get("/overview", response_model=ApiResponse[StatisticsOverview])
async def get_overview(
    current_user: User = Depends(get_current_user),
    service: StatisticsService = Depends(get_statistics_service),
):
    data = await service.get_overview(current_user.id)
    return ApiResponse(success=True, data=data)


@router.get("/timeframe", response_model=ApiResponse[TimeframeResponse])
async def get_timeframe(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    current_user: User = Depends(get_current_user),
    service: StatisticsService = Depends(get_statistics_service),
):
    """Per-day activity between two ISO dates, inclusive."""
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    if start is None or end is None:
        raise ValidationException(
            "Start date and end date are required",
            details={"startDate": start_date, "endDate": end_date},
        )

    data = await service.get_timeframe(current_user.id, start, end)
    return ApiResponse(success=True, data=data)


@router.post("/sync/{campaign_id}", response_model=ApiResponse[SyncResponse])
async def sync_campaign_statistics(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: StatisticsService = Depends(get_statistics_service),
):
    data = await service.sync_campaign(campaign_id, current_user.id)
    return ApiResponse(success=True, data=data, message="Statistics synced successfully")
