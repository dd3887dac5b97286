"""
Campaign statistics aggregation.

Counts are always recomputed from recipient rows; the ``campaign_statistics``
table only caches the latest result.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Sequence

from fastapi import Depends
from sqlalchemy import select, func, case, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ValidationException
from app.core.logging import get_logger
from app.models.campaign import Campaign, Recipient, CampaignStatistics
from app.schemas.campaign import Recipient as RecipientSchema
from app.schemas.statistics import (
    CampaignCounts,
    CampaignStatisticsData,
    CampaignStatisticsResponse,
    OverallRates,
    RecipientCounts,
    StatisticsOverview,
    StatusBreakdown,
    SyncResponse,
    TimeframePoint,
    TimeframeResponse,
)
from app.services.campaign_service import CampaignService
from app.services.email_service import EmailGateway, get_email_gateway

logger = get_logger(__name__)

DELIVERED_STATUSES = ("delivered", "sent")


def calculate_rate(numerator: int, denominator: int) -> float:
    """Percentage rounded to two decimals; 0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return round(100 * numerator / denominator, 2)


def summarize_recipients(recipients: Sequence[Recipient]) -> CampaignStatisticsData:
    """Compute campaign counts and rates from its full recipient set."""
    total_sent = len(recipients)
    total_delivered = sum(1 for r in recipients if r.status in DELIVERED_STATUSES)
    total_opened = sum(1 for r in recipients if r.opened_at is not None)
    total_clicked = sum(1 for r in recipients if r.clicked_at is not None)
    total_unsubscribed = sum(1 for r in recipients if r.unsubscribed_at is not None)
    total_bounced = sum(1 for r in recipients if r.bounced_at is not None)

    return CampaignStatisticsData(
        total_sent=total_sent,
        total_delivered=total_delivered,
        total_opened=total_opened,
        total_clicked=total_clicked,
        total_unsubscribed=total_unsubscribed,
        total_bounced=total_bounced,
        delivery_rate=calculate_rate(total_delivered, total_sent),
        open_rate=calculate_rate(total_opened, total_delivered),
        click_rate=calculate_rate(total_clicked, total_delivered),
        unsubscribe_rate=calculate_rate(total_unsubscribed, total_delivered),
        bounce_rate=calculate_rate(total_bounced, total_sent),
    )


class StatisticsService:
    """Statistics queries scoped to the caller's campaigns."""

    def __init__(self, session: AsyncSession, gateway: Optional[EmailGateway] = None):
        self.session = session
        self.gateway = gateway
        self.campaigns = CampaignService(session, gateway)

    async def get_campaign_statistics(self, campaign_id: int, user_id: int) -> CampaignStatisticsResponse:
        campaign = await self.campaigns.get_owned_campaign(campaign_id, user_id)

        recipients = (
            await self.session.execute(
                select(Recipient)
                .where(Recipient.campaign_id == campaign.id)
                .order_by(desc(Recipient.created_at), desc(Recipient.id))
            )
        ).scalars().all()

        statistics = summarize_recipients(recipients)
        breakdown = await self._status_breakdown(campaign.id)

        await self._store(campaign.id, statistics)

        return CampaignStatisticsResponse(
            statistics=statistics,
            recipients=[RecipientSchema.model_validate(r) for r in recipients],
            status_breakdown=breakdown,
        )

    async def get_overview(self, user_id: int) -> StatisticsOverview:
        """Totals and rates across every campaign the user owns."""
        campaign_row = (
            await self.session.execute(
                select(
                    func.count(Campaign.id),
                    func.count(case((Campaign.status == "sent", Campaign.id))),
                    func.count(case((Campaign.status == "draft", Campaign.id))),
                    func.count(case((Campaign.status == "sending", Campaign.id))),
                    func.count(case((Campaign.status == "failed", Campaign.id))),
                ).where(Campaign.user_id == user_id)
            )
        ).one()

        recipient_row = (
            await self.session.execute(
                select(
                    func.count(Recipient.id),
                    func.count(case((Recipient.status.in_(DELIVERED_STATUSES), Recipient.id))),
                    func.count(Recipient.opened_at),
                    func.count(Recipient.clicked_at),
                    func.count(Recipient.unsubscribed_at),
                    func.count(Recipient.bounced_at),
                )
                .join(Campaign, Recipient.campaign_id == Campaign.id)
                .where(Campaign.user_id == user_id)
            )
        ).one()

        total, sent, opened, clicked, unsubscribed, bounced = (int(value or 0) for value in recipient_row)

        return StatisticsOverview(
            campaigns=CampaignCounts(
                total_campaigns=campaign_row[0] or 0,
                sent_campaigns=campaign_row[1] or 0,
                draft_campaigns=campaign_row[2] or 0,
                sending_campaigns=campaign_row[3] or 0,
                failed_campaigns=campaign_row[4] or 0,
            ),
            recipients=RecipientCounts(
                total_recipients=total,
                sent_recipients=sent,
                opened_recipients=opened,
                clicked_recipients=clicked,
                unsubscribed_recipients=unsubscribed,
                bounced_recipients=bounced,
            ),
            overall_stats=OverallRates(
                delivery_rate=calculate_rate(sent, total),
                open_rate=calculate_rate(opened, sent),
                click_rate=calculate_rate(clicked, sent),
                unsubscribe_rate=calculate_rate(unsubscribed, sent),
                bounce_rate=calculate_rate(bounced, total),
            ),
        )

    async def get_timeframe(self, user_id: int, start_date: date, end_date: date) -> TimeframeResponse:
        """Per-day activity for campaigns sent between two dates, inclusive."""
        if end_date < start_date:
            raise ValidationException("End date must not be before start date")

        window_start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        window_end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        sent_day = func.date(Campaign.sent_at).label("day")

        rows = (
            await self.session.execute(
                select(
                    sent_day,
                    func.count(func.distinct(Campaign.id)),
                    func.count(Recipient.id),
                    func.count(case((Recipient.status.in_(DELIVERED_STATUSES), Recipient.id))),
                    func.count(Recipient.opened_at),
                    func.count(Recipient.clicked_at),
                )
                .select_from(Campaign)
                .outerjoin(Recipient, Recipient.campaign_id == Campaign.id)
                .where(
                    Campaign.user_id == user_id,
                    Campaign.sent_at.is_not(None),
                    Campaign.sent_at >= window_start,
                    Campaign.sent_at < window_end,
                )
                .group_by(sent_day)
                .order_by(sent_day)
            )
        ).all()

        return TimeframeResponse(
            time_series_data=[
                TimeframePoint(
                    date=day,
                    campaigns_count=campaigns,
                    recipients_count=recipients,
                    sent_count=sent,
                    opened_count=opened,
                    clicked_count=clicked,
                )
                for day, campaigns, recipients, sent, opened, clicked in rows
            ]
        )

    async def sync_campaign(self, campaign_id: int, user_id: int) -> SyncResponse:
        """Refresh local statistics and attach provider totals for the send window."""
        campaign = await self.campaigns.get_owned_campaign(campaign_id, user_id)
        sent_at = campaign.sent_at

        local = await self.get_campaign_statistics(campaign_id, user_id)

        provider_stats = None
        if sent_at is not None and self.gateway is not None and self.gateway.is_configured:
            provider_stats = await self.gateway.get_stats(sent_at.date(), datetime.now(timezone.utc).date())

        logger.info(
            "Campaign statistics synced",
            campaign_id=campaign_id,
            provider_stats=provider_stats is not None,
        )
        return SyncResponse(statistics=local.statistics, provider_stats=provider_stats)

    async def _status_breakdown(self, campaign_id: int) -> List[StatusBreakdown]:
        rows = (
            await self.session.execute(
                select(
                    Recipient.status,
                    func.count(Recipient.id),
                    func.count(Recipient.opened_at),
                    func.count(Recipient.clicked_at),
                    func.count(Recipient.unsubscribed_at),
                    func.count(Recipient.bounced_at),
                )
                .where(Recipient.campaign_id == campaign_id)
                .group_by(Recipient.status)
                .order_by(Recipient.status)
            )
        ).all()

        return [
            StatusBreakdown(
                status=status,
                count=count,
                opened_count=opened,
                clicked_count=clicked,
                unsubscribed_count=unsubscribed,
                bounced_count=bounced,
            )
            for status, count, opened, clicked, unsubscribed, bounced in rows
        ]

    async def _store(self, campaign_id: int, statistics: CampaignStatisticsData) -> None:
        """Upsert the cached statistics row."""
        row = await self.session.scalar(
            select(CampaignStatistics).where(CampaignStatistics.campaign_id == campaign_id)
        )
        if row is None:
            row = CampaignStatistics(campaign_id=campaign_id)
            self.session.add(row)

        row.total_sent = statistics.total_sent
        row.total_delivered = statistics.total_delivered
        row.total_opened = statistics.total_opened
        row.total_clicked = statistics.total_clicked
        row.total_unsubscribed = statistics.total_unsubscribed
        row.total_bounced = statistics.total_bounced
        row.delivery_rate = Decimal(str(statistics.delivery_rate))
        row.open_rate = Decimal(str(statistics.open_rate))
        row.click_rate = Decimal(str(statistics.click_rate))
        row.unsubscribe_rate = Decimal(str(statistics.unsubscribe_rate))
        row.bounce_rate = Decimal(str(statistics.bounce_rate))
        row.last_updated = datetime.now(timezone.utc)

        await self.session.commit()


def get_statistics_service(
    db: AsyncSession = Depends(get_db),
    gateway: EmailGateway = Depends(get_email_gateway),
) -> StatisticsService:
    return StatisticsService(db, gateway)
