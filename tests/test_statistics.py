"""
Test statistics aggregation.
"""
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from app.core.exceptions import ValidationException
from app.models import Campaign, CampaignStatistics, Recipient, User
from app.services.statistics_service import (
    StatisticsService,
    calculate_rate,
    summarize_recipients,
)
from conftest import create_campaign, get_recipients


class TestRates:

    def test_zero_denominator(self):
        assert calculate_rate(5, 0) == 0.0

    def test_rounding(self):
        assert calculate_rate(1, 3) == 33.33
        assert calculate_rate(2, 3) == 66.67
        assert calculate_rate(3, 3) == 100.0

    def test_summary_uses_delivered_as_denominator(self):
        now = datetime.now(timezone.utc)
        recipients = [
            Recipient(email="a@example.com", status="delivered", opened_at=now, clicked_at=now),
            Recipient(email="b@example.com", status="sent"),
            Recipient(email="c@example.com", status="bounced", bounced_at=now),
            Recipient(email="d@example.com", status="pending"),
        ]
        data = summarize_recipients(recipients)
        assert data.total_sent == 4
        assert data.total_delivered == 2
        assert data.delivery_rate == 50.0
        assert data.open_rate == 50.0
        assert data.click_rate == 50.0
        assert data.bounce_rate == 25.0
        assert data.unsubscribe_rate == 0.0

    def test_rates_can_exceed_one_hundred_percent(self):
        now = datetime.now(timezone.utc)
        recipients = [
            Recipient(email=f"u{i}@example.com", status="unsubscribed", unsubscribed_at=now)
            for i in range(10)
        ]
        recipients.append(Recipient(email="d@example.com", status="delivered"))
        data = summarize_recipients(recipients)
        assert data.total_delivered == 1
        assert data.unsubscribe_rate == 1000.0

    def test_rate_columns_hold_values_above_one_thousand(self):
        for name in ("delivery_rate", "open_rate", "click_rate", "unsubscribe_rate", "bounce_rate"):
            column_type = CampaignStatistics.__table__.c[name].type
            assert (column_type.precision, column_type.scale) == (7, 2)

    def test_empty_campaign(self):
        data = summarize_recipients([])
        assert data.delivery_rate == 0.0
        assert data.open_rate == 0.0


class TestCampaignStatisticsEndpoint:

    def test_send_then_open_scenario(self, client, auth_headers):
        campaign = create_campaign(client, auth_headers)
        client.post(f"/api/campaigns/{campaign['id']}/send", headers=auth_headers)

        response = client.get(f"/api/statistics/campaign/{campaign['id']}", headers=auth_headers)
        assert response.status_code == 200
        stats = response.json()["data"]["statistics"]
        assert stats["totalSent"] == 3
        assert stats["deliveryRate"] == 100.0

        first = sorted(get_recipients(client, auth_headers, campaign["id"]), key=lambda r: r["id"])[0]
        client.post("/api/webhooks/sendgrid", json=[{"event": "open", "recipient_id": first["id"]}])

        response = client.get(f"/api/statistics/campaign/{campaign['id']}", headers=auth_headers)
        data = response.json()["data"]
        assert data["statistics"]["totalOpened"] == 1
        assert data["statistics"]["openRate"] == 33.33
        assert len(data["recipients"]) == 3
        assert data["statusBreakdown"] == [{
            "status": "sent",
            "count": 3,
            "openedCount": 1,
            "clickedCount": 0,
            "unsubscribedCount": 0,
            "bouncedCount": 0,
        }]

    def test_not_owned(self, client, auth_headers, other_auth_headers):
        campaign = create_campaign(client, auth_headers)
        response = client.get(f"/api/statistics/campaign/{campaign['id']}", headers=other_auth_headers)
        assert response.status_code == 404


class TestOverviewAndTimeframe:

    def test_overview(self, client, auth_headers, gateway):
        sent = create_campaign(client, auth_headers)
        create_campaign(client, auth_headers, emails=("z@example.com",))
        gateway.failing.add("c@example.com")
        client.post(f"/api/campaigns/{sent['id']}/send", headers=auth_headers)

        data = client.get("/api/statistics/overview", headers=auth_headers).json()["data"]
        assert data["campaigns"] == {
            "totalCampaigns": 2,
            "sentCampaigns": 1,
            "draftCampaigns": 1,
            "sendingCampaigns": 0,
            "failedCampaigns": 0,
        }
        assert data["recipients"]["totalRecipients"] == 4
        assert data["recipients"]["sentRecipients"] == 2
        assert data["overallStats"]["deliveryRate"] == 50.0

    def test_timeframe_requires_dates(self, client, auth_headers):
        response = client.get("/api/statistics/timeframe", headers=auth_headers)
        assert response.status_code == 400

    def test_timeframe_rejects_reversed_range(self, client, auth_headers):
        response = client.get(
            "/api/statistics/timeframe",
            params={"startDate": "2026-02-01", "endDate": "2026-01-01"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_timeframe_groups_by_send_date(self, client, auth_headers):
        campaign = create_campaign(client, auth_headers)
        client.post(f"/api/campaigns/{campaign['id']}/send", headers=auth_headers)
        today = datetime.now(timezone.utc).date().isoformat()

        response = client.get(
            "/api/statistics/timeframe",
            params={"startDate": today, "endDate": today},
            headers=auth_headers,
        )
        points = response.json()["data"]["timeSeriesData"]
        assert len(points) == 1
        assert points[0]["date"] == today
        assert points[0]["campaignsCount"] == 1
        assert points[0]["recipientsCount"] == 3
        assert points[0]["sentCount"] == 3


class TestSync:

    def test_sync_unsent_campaign_skips_provider(self, client, auth_headers, gateway):
        campaign = create_campaign(client, auth_headers)
        response = client.post(f"/api/statistics/sync/{campaign['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["providerStats"] is None
        assert gateway.stats_requests == []

    def test_sync_sent_campaign_attaches_provider_stats(self, client, auth_headers, gateway):
        campaign = create_campaign(client, auth_headers)
        client.post(f"/api/campaigns/{campaign['id']}/send", headers=auth_headers)

        response = client.post(f"/api/statistics/sync/{campaign['id']}", headers=auth_headers)
        data = response.json()["data"]
        assert data["providerStats"] == gateway.stats
        assert data["statistics"]["totalSent"] == 3
        assert len(gateway.stats_requests) == 1


class TestStatisticsService:

    async def test_statistics_row_is_upserted(self, session):
        user = User(username="svc", email="svc@example.com", password_hash="x")
        campaign = Campaign(user=user, name="C", subject="S", html_content="<p/>", status="sent")
        campaign.recipients = [
            Recipient(email="a@example.com", status="delivered"),
            Recipient(email="b@example.com", status="bounced"),
        ]
        session.add(campaign)
        await session.commit()

        service = StatisticsService(session)
        await service.get_campaign_statistics(campaign.id, user.id)
        await service.get_campaign_statistics(campaign.id, user.id)

        rows = (
            await session.execute(
                select(CampaignStatistics).where(CampaignStatistics.campaign_id == campaign.id)
            )
        ).scalars().all()
        assert len(rows) == 1
        assert float(rows[0].delivery_rate) == 50.0

    async def test_rate_above_one_thousand_is_stored(self, session):
        now = datetime.now(timezone.utc)
        user = User(username="svc", email="svc@example.com", password_hash="x")
        campaign = Campaign(user=user, name="C", subject="S", html_content="<p/>", status="sent")
        campaign.recipients = [
            Recipient(email=f"u{i}@example.com", status="unsubscribed", unsubscribed_at=now)
            for i in range(10)
        ] + [Recipient(email="d@example.com", status="delivered")]
        session.add(campaign)
        await session.commit()

        response = await StatisticsService(session).get_campaign_statistics(campaign.id, user.id)
        assert response.statistics.unsubscribe_rate == 1000.0

        row = (
            await session.execute(
                select(CampaignStatistics)
                .where(CampaignStatistics.campaign_id == campaign.id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        assert float(row.unsubscribe_rate) == 1000.0

    async def test_timeframe_validates_range(self, session):
        service = StatisticsService(session)
        with pytest.raises(ValidationException):
            await service.get_timeframe(1, date(2026, 2, 1), date(2026, 1, 1))
