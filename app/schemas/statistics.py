"""
Statistics schemas.
"""
import datetime
from typing import Any, Dict, List, Optional

from .common import CamelModel
from .campaign import Recipient


class CampaignStatisticsData(CamelModel):
    total_sent: int
    total_delivered: int
    total_opened: int
    total_clicked: int
    total_unsubscribed: int
    total_bounced: int
    delivery_rate: float
    open_rate: float
    click_rate: float
    unsubscribe_rate: float
    bounce_rate: float


class StatusBreakdown(CamelModel):
    status: str
    count: int
    opened_count: int
    clicked_count: int
    unsubscribed_count: int
    bounced_count: int


class CampaignStatisticsResponse(CamelModel):
    statistics: CampaignStatisticsData
    recipients: List[Recipient]
    status_breakdown: List[StatusBreakdown]


class CampaignCounts(CamelModel):
    total_campaigns: int
    sent_campaigns: int
    draft_campaigns: int
    sending_campaigns: int
    failed_campaigns: int


class RecipientCounts(CamelModel):
    total_recipients: int
    sent_recipients: int
    opened_recipients: int
    clicked_recipients: int
    unsubscribed_recipients: int
    bounced_recipients: int


class OverallRates(CamelModel):
    delivery_rate: float
    open_rate: float
    click_rate: float
    unsubscribe_rate: float
    bounce_rate: float


class StatisticsOverview(CamelModel):
    campaigns: CampaignCounts
    recipients: RecipientCounts
    overall_stats: OverallRates


class TimeframePoint(CamelModel):
    date: datetime.date
    campaigns_count: int
    recipients_count: int
    sent_count: int
    opened_count: int
    clicked_count: int


class TimeframeResponse(CamelModel):
    time_series_data: List[TimeframePoint]


class SyncResponse(CamelModel):
    statistics: CampaignStatisticsData
    provider_stats: Optional[List[Dict[str, Any]]] = None
