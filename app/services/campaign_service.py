"""
Campaign lifecycle: creation, dispatch through the email gateway and preview.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select, update, func, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import (
    InvalidStateException,
    MailPilotException,
    NotFoundException,
    UpstreamException,
    ValidationException,
)
from app.core.logging import get_logger
from app.models.campaign import Campaign, Recipient, CampaignStatistics
from app.models.template import EmailTemplate
from app.schemas.campaign import (
    CampaignCreate,
    CampaignDetail,
    CampaignSummary,
    Recipient as RecipientSchema,
    SendCampaignResult,
)
from app.services.email_service import (
    DispatchResult,
    EmailGateway,
    OutgoingEmail,
    get_email_gateway,
)
from app.utils.validators import validate_user_email

logger = get_logger(__name__)


def _full_name(recipient: Recipient) -> Optional[str]:
    name = " ".join(part for part in (recipient.first_name, recipient.last_name) if part)
    return name or None


class CampaignService:
    """Campaign operations scoped to a database session and an email gateway."""

    def __init__(self, session: AsyncSession, gateway: Optional[EmailGateway] = None):
        self.session = session
        self.gateway = gateway

    async def get_owned_campaign(self, campaign_id: int, user_id: int) -> Campaign:
        """Load a campaign owned by ``user_id`` or raise NotFound."""
        result = await self.session.execute(
            select(Campaign).where(Campaign.id == campaign_id, Campaign.user_id == user_id)
        )
        campaign = result.scalar_one_or_none()
        if campaign is None:
            raise NotFoundException("Campaign not found")
        return campaign

    async def list_campaigns(self, user_id: int) -> List[CampaignSummary]:
        recipient_count = (
            select(func.count(Recipient.id))
            .where(Recipient.campaign_id == Campaign.id)
            .correlate(Campaign)
            .scalar_subquery()
        )
        sent_count = (
            select(func.count(Recipient.id))
            .where(Recipient.campaign_id == Campaign.id, Recipient.sent_at.is_not(None))
            .correlate(Campaign)
            .scalar_subquery()
        )

        result = await self.session.execute(
            select(Campaign, EmailTemplate.name, recipient_count, sent_count)
            .outerjoin(EmailTemplate, Campaign.template_id == EmailTemplate.id)
            .where(Campaign.user_id == user_id)
            .order_by(desc(Campaign.created_at), desc(Campaign.id))
        )

        return [
            self._summary(campaign, template_name, recipients or 0, sent or 0)
            for campaign, template_name, recipients, sent in result.all()
        ]

    async def get_campaign_detail(self, campaign_id: int, user_id: int) -> CampaignDetail:
        campaign = await self.get_owned_campaign(campaign_id, user_id)

        template_name = None
        if campaign.template_id is not None:
            template_name = await self.session.scalar(
                select(EmailTemplate.name).where(EmailTemplate.id == campaign.template_id)
            )

        recipients = (
            await self.session.execute(
                select(Recipient)
                .where(Recipient.campaign_id == campaign.id)
                .order_by(Recipient.created_at, Recipient.id)
            )
        ).scalars().all()

        sent = sum(1 for recipient in recipients if recipient.sent_at is not None)
        return CampaignDetail(
            campaign=self._summary(campaign, template_name, len(recipients), sent),
            recipients=[RecipientSchema.model_validate(recipient) for recipient in recipients],
        )

    async def create_campaign(self, user_id: int, data: CampaignCreate) -> Campaign:
        """
        Create a draft campaign with its recipients and an empty statistics row.

        All rows are written in one transaction.
        """
        missing = [
            field
            for field, value in (
                ("name", data.name),
                ("subject", data.subject),
                ("htmlContent", data.html_content),
            )
            if not (value and value.strip())
        ]
        if not data.recipients:
            missing.append("recipients")
        if missing:
            raise ValidationException(
                "Campaign name, subject, content and recipients are required",
                details={"missing": missing},
            )

        invalid = [r.email for r in data.recipients if not validate_user_email(r.email.strip())]
        if invalid:
            raise ValidationException(
                "Invalid recipient email addresses",
                details={"invalid": invalid},
            )

        if data.template_id is not None:
            template_id = await self.session.scalar(
                select(EmailTemplate.id).where(
                    EmailTemplate.id == data.template_id,
                    EmailTemplate.user_id == user_id,
                )
            )
            if template_id is None:
                raise ValidationException("Template not found", details={"templateId": data.template_id})

        campaign = Campaign(
            user_id=user_id,
            template_id=data.template_id,
            name=data.name.strip(),
            subject=data.subject,
            html_content=data.html_content,
            text_content=data.text_content,
            status="draft",
        )
        campaign.recipients = [
            Recipient(
                email=r.email.strip(),
                first_name=r.first_name,
                last_name=r.last_name,
                custom_fields=r.custom_fields or {},
                status="pending",
            )
            for r in data.recipients
        ]
        campaign.statistics = CampaignStatistics()

        self.session.add(campaign)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to create campaign: {e}")
            raise

        await self.session.refresh(campaign)
        logger.info(
            "Campaign created",
            campaign_id=campaign.id,
            user_id=user_id,
            recipients=len(data.recipients),
        )
        return campaign

    async def delete_campaign(self, campaign_id: int, user_id: int) -> None:
        campaign = await self.get_owned_campaign(campaign_id, user_id)
        await self.session.delete(campaign)
        await self.session.commit()
        logger.info("Campaign deleted", campaign_id=campaign_id, user_id=user_id)

    async def send_campaign(self, campaign_id: int, user_id: int) -> SendCampaignResult:
        """
        Dispatch a draft campaign to its pending recipients.

        The campaign moves draft -> sending before the provider call and
        sending -> sent/failed afterwards. Recipients whose send failed are
        marked ``failed``; the campaign is ``sent`` when at least one
        recipient was accepted by the provider.
        """
        campaign = await self.get_owned_campaign(campaign_id, user_id)

        if campaign.status != "draft":
            raise InvalidStateException(
                "Campaign has already been sent or is being sent",
                details={"status": campaign.status},
            )

        pending = (
            await self.session.execute(
                select(Recipient)
                .where(Recipient.campaign_id == campaign.id, Recipient.status == "pending")
                .order_by(Recipient.id)
            )
        ).scalars().all()

        if not pending:
            raise InvalidStateException("Campaign has no pending recipients")

        claimed = await self.session.execute(
            update(Campaign)
            .where(Campaign.id == campaign.id, Campaign.status == "draft")
            .values(status="sending")
        )
        if claimed.rowcount == 0:
            await self.session.rollback()
            raise InvalidStateException("Campaign has already been sent or is being sent")
        await self.session.commit()

        messages = [
            OutgoingEmail(
                to=recipient.email,
                to_name=_full_name(recipient),
                subject=campaign.subject,
                html_content=campaign.html_content,
                text_content=campaign.text_content,
                recipient_id=recipient.id,
                custom_args={"campaign_id": campaign.id, "user_id": user_id},
            )
            for recipient in pending
        ]

        logger.info("Dispatching campaign", campaign_id=campaign.id, recipients=len(messages))

        try:
            results = await self._gateway().send_batch(messages)
        except MailPilotException:
            await self._mark_failed(campaign.id)
            raise
        except Exception as e:
            await self._mark_failed(campaign.id)
            logger.error(f"Campaign dispatch failed: {e}")
            raise UpstreamException("Failed to send campaign", details={"error": str(e)})

        outcome = await self._reconcile(campaign, pending, results)

        if outcome.sent_count == 0:
            errors = [result.error for result in results if result.error]
            raise UpstreamException(
                "Failed to send campaign",
                details={"failedCount": outcome.failed_count, "errors": errors[:10]},
            )

        return outcome

    async def preview_campaign(self, campaign_id: int, user_id: int, test_email: str) -> DispatchResult:
        """Send one tagged test copy; no recipient or campaign state changes."""
        campaign = await self.get_owned_campaign(campaign_id, user_id)

        result = await self._gateway().send_single(
            OutgoingEmail(
                to=test_email,
                subject=f"[Test] {campaign.subject}",
                html_content=campaign.html_content,
                text_content=campaign.text_content,
                custom_args={
                    "campaign_id": campaign.id,
                    "user_id": user_id,
                    "is_preview": "true",
                },
            )
        )

        if not result.success:
            raise UpstreamException("Failed to send test email", details={"error": result.error})

        logger.info("Preview sent", campaign_id=campaign.id, email=test_email)
        return result

    def _gateway(self) -> EmailGateway:
        if self.gateway is None:
            raise UpstreamException("Email provider is not configured")
        return self.gateway

    async def _mark_failed(self, campaign_id: int) -> None:
        await self.session.execute(
            update(Campaign).where(Campaign.id == campaign_id).values(status="failed")
        )
        await self.session.commit()

    async def _reconcile(
        self,
        campaign: Campaign,
        recipients: List[Recipient],
        results: List[DispatchResult],
    ) -> SendCampaignResult:
        """Apply per-recipient dispatch results in a single transaction."""
        now = datetime.now(timezone.utc)
        by_recipient: Dict[int, DispatchResult] = {
            result.recipient_id: result for result in results if result.recipient_id is not None
        }

        sent_count = 0
        for recipient in recipients:
            result = by_recipient.get(recipient.id)
            if result is not None and result.success:
                recipient.status = "sent"
                recipient.provider_message_id = result.message_id
                recipient.sent_at = now
                sent_count += 1
            else:
                recipient.status = "failed"

        failed_count = len(recipients) - sent_count
        campaign.status = "sent" if sent_count else "failed"
        if sent_count:
            campaign.sent_at = now

        await self.session.commit()

        logger.info(
            "Campaign dispatch reconciled",
            campaign_id=campaign.id,
            status=campaign.status,
            sent=sent_count,
            failed=failed_count,
        )
        return SendCampaignResult(
            campaign_id=campaign.id,
            status=campaign.status,
            sent_count=sent_count,
            failed_count=failed_count,
        )

    @staticmethod
    def _summary(
        campaign: Campaign,
        template_name: Optional[str],
        recipient_count: int,
        sent_count: int,
    ) -> CampaignSummary:
        summary = CampaignSummary.model_validate(campaign)
        summary.template_name = template_name
        summary.recipient_count = recipient_count
        summary.sent_count = sent_count
        return summary


def get_campaign_service(
    db: AsyncSession = Depends(get_db),
    gateway: EmailGateway = Depends(get_email_gateway),
) -> CampaignService:
    return CampaignService(db, gateway)
