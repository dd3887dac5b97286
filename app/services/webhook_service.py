"""
Provider webhook ingestion.

Each inbound event is matched to a recipient, applied to the recipient row and
appended to the provider event log. Events that cannot be matched, or whose
processing raised, are logged with ``processed=False`` for later retry.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import Depends
from sendgrid.helpers.eventwebhook import EventWebhook, EventWebhookHeader
from sqlalchemy import select, func, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import AuthorizationException, NotFoundException
from app.core.logging import get_logger
from app.models.campaign import Campaign, Recipient
from app.models.event import ProviderEvent
from app.schemas.webhook import RetryResult, WebhookBatchResult
from app.utils.validators import normalize_email

logger = get_logger(__name__)

PROCESSED = "processed"
UNMATCHED = "unmatched"
FAILED = "failed"
DUPLICATE = "duplicate"
PREVIEW = "preview"

# event type -> (status to set, timestamp column set once)
EVENT_EFFECTS: Dict[str, Tuple[Optional[str], Optional[str]]] = {
    "delivered": ("delivered", "delivered_at"),
    "open": (None, "opened_at"),
    "click": (None, "clicked_at"),
    "bounce": ("bounced", "bounced_at"),
    "unsubscribe": ("unsubscribed", "unsubscribed_at"),
    "spam_report": ("spam", None),
}

# SendGrid spellings of the same events
EVENT_ALIASES = {
    "spamreport": "spam_report",
    "group_unsubscribe": "unsubscribe",
}


def normalize_event_type(event_type: Any) -> str:
    value = str(event_type or "unknown").strip().lower()
    return EVENT_ALIASES.get(value, value)


def event_time(event: Mapping[str, Any]) -> datetime:
    """Event time from the provider's Unix timestamp, or now when absent."""
    timestamp = event.get("timestamp")
    try:
        return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.now(timezone.utc)


def message_id_prefix(sg_message_id: Any) -> Optional[str]:
    """SendGrid event message ids extend the send-time id with ``.filter...``."""
    if not sg_message_id:
        return None
    return str(sg_message_id).split(".", 1)[0] or None


def is_preview_event(event: Mapping[str, Any]) -> bool:
    return str(event.get("is_preview") or "").strip().lower() == "true"


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def apply_event(recipient: Recipient, event_type: str, occurred_at: datetime) -> bool:
    """
    Apply one event to a recipient row.

    Status changes are unconditional; timestamps are only set while still
    null, so replaying an event never moves a timestamp.

    Returns:
        bool: False for event types that carry no state change
    """
    effect = EVENT_EFFECTS.get(event_type)
    if effect is None:
        return False

    status, timestamp_field = effect
    if status is not None:
        recipient.status = status
    if timestamp_field is not None and getattr(recipient, timestamp_field) is None:
        setattr(recipient, timestamp_field, occurred_at)
    return True


def verify_webhook_signature(payload: bytes, headers: Mapping[str, str], public_key: str) -> None:
    """Check a signed event webhook request; raises AuthorizationException on mismatch."""
    signature = headers.get(EventWebhookHeader.SIGNATURE)
    timestamp = headers.get(EventWebhookHeader.TIMESTAMP)
    if not signature or not timestamp:
        raise AuthorizationException("Missing webhook signature")

    event_webhook = EventWebhook()
    try:
        key = event_webhook.convert_public_key_to_ecdsa(public_key)
        valid = event_webhook.verify_signature(payload.decode("utf-8"), signature, timestamp, key)
    except Exception as e:
        logger.warning(f"Webhook signature check errored: {e}")
        valid = False

    if not valid:
        raise AuthorizationException("Invalid webhook signature")


class WebhookService:
    """Ingests provider events and serves the event log."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def ingest_events(self, events: List[Any]) -> WebhookBatchResult:
        counts = {PROCESSED: 0, UNMATCHED: 0, FAILED: 0, DUPLICATE: 0, PREVIEW: 0}
        for event in events:
            outcome = await self.process_event(event)
            counts[outcome] += 1

        logger.info(
            "Webhook batch processed",
            received=len(events),
            processed=counts[PROCESSED],
            unmatched=counts[UNMATCHED],
            failed=counts[FAILED],
            duplicates=counts[DUPLICATE],
            previews=counts[PREVIEW],
        )
        return WebhookBatchResult(
            received=len(events),
            processed=counts[PROCESSED],
            unmatched=counts[UNMATCHED],
            failed=counts[FAILED],
            duplicates=counts[DUPLICATE],
            previews=counts[PREVIEW],
        )

    async def process_event(self, event: Any) -> str:
        """Process one event in its own transaction and return its outcome."""
        if not isinstance(event, dict):
            event = {"raw": event}

        event_type = normalize_event_type(event.get("event"))
        provider_event_id = event.get("sg_event_id")

        try:
            if provider_event_id and await self._already_processed(str(provider_event_id)):
                logger.info("Duplicate webhook event ignored", provider_event_id=provider_event_id)
                return DUPLICATE

            # preview copies are not addressed to a recipient row
            if is_preview_event(event):
                self.session.add(
                    self._log_row(
                        event,
                        event_type,
                        campaign_id=await self._existing_campaign_id(event.get("campaign_id")),
                        processed=True,
                    )
                )
                await self.session.commit()
                return PREVIEW

            recipient = await self.find_recipient(event)
            if recipient is None:
                logger.warning(
                    "No recipient matches webhook event",
                    event_type=event_type,
                    email=event.get("email"),
                    campaign_id=event.get("campaign_id"),
                )
                self.session.add(
                    self._log_row(
                        event,
                        event_type,
                        campaign_id=await self._existing_campaign_id(event.get("campaign_id")),
                        processed=False,
                        error_message="No matching recipient",
                    )
                )
                await self.session.commit()
                return UNMATCHED

            if not apply_event(recipient, event_type, event_time(event)):
                logger.info("Unhandled webhook event type", event_type=event_type)

            self.session.add(
                self._log_row(
                    event,
                    event_type,
                    campaign_id=recipient.campaign_id,
                    recipient_email=recipient.email,
                    processed=True,
                )
            )
            await self.session.commit()
            return PROCESSED

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to process webhook event: {e}", event_type=event_type)
            await self._record_failure(event, event_type, str(e))
            return FAILED

    async def find_recipient(self, event: Mapping[str, Any]) -> Optional[Recipient]:
        """
        Locate the recipient an event refers to.

        Lookup order: explicit ``recipient_id``; else (``campaign_id``,
        ``email``); else the provider message id.
        """
        campaign_id = _as_int(event.get("campaign_id"))
        email = event.get("email")

        if event.get("recipient_id") not in (None, ""):
            recipient_id = _as_int(event.get("recipient_id"))
            if recipient_id is None:
                return None
            recipient = await self.session.get(Recipient, recipient_id)
            if recipient is not None and campaign_id is not None and recipient.campaign_id != campaign_id:
                return None
            return recipient

        if campaign_id is not None and email:
            return await self.session.scalar(
                select(Recipient)
                .where(
                    Recipient.campaign_id == campaign_id,
                    func.lower(Recipient.email) == normalize_email(email),
                )
                .order_by(Recipient.id)
                .limit(1)
            )

        message_id = message_id_prefix(event.get("sg_message_id"))
        if message_id:
            return await self.session.scalar(
                select(Recipient)
                .where(Recipient.provider_message_id == message_id)
                .order_by(Recipient.id)
                .limit(1)
            )

        return None

    async def list_events(
        self,
        user_id: int,
        campaign_id: Optional[int] = None,
        event_type: Optional[str] = None,
        processed: Optional[bool] = None,
        limit: int = 100,
    ) -> List[ProviderEvent]:
        query = (
            select(ProviderEvent)
            .join(Campaign, ProviderEvent.campaign_id == Campaign.id)
            .where(Campaign.user_id == user_id)
        )
        if campaign_id is not None:
            query = query.where(ProviderEvent.campaign_id == campaign_id)
        if event_type:
            query = query.where(ProviderEvent.event_type == normalize_event_type(event_type))
        if processed is not None:
            query = query.where(ProviderEvent.processed.is_(processed))

        query = query.order_by(desc(ProviderEvent.created_at), desc(ProviderEvent.id)).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def retry_event(self, event_id: int, user_id: int) -> RetryResult:
        """Replay a stored unprocessed event through the normal mapping."""
        stored = await self.session.scalar(
            select(ProviderEvent)
            .join(Campaign, ProviderEvent.campaign_id == Campaign.id)
            .where(
                ProviderEvent.id == event_id,
                ProviderEvent.processed.is_(False),
                Campaign.user_id == user_id,
            )
        )
        if stored is None:
            raise NotFoundException("Event not found or already processed")

        payload = dict(stored.event_data or {})
        outcome = await self.process_event(payload)

        resolved = outcome in (PROCESSED, DUPLICATE, PREVIEW)
        if resolved:
            stored = await self.session.get(ProviderEvent, event_id)
            stored.processed = True
            stored.error_message = None
            await self.session.commit()

        logger.info("Webhook event retried", event_id=event_id, outcome=outcome)
        return RetryResult(event_id=event_id, processed=resolved, outcome=outcome)

    async def _already_processed(self, provider_event_id: str) -> bool:
        existing = await self.session.scalar(
            select(ProviderEvent.id)
            .where(
                ProviderEvent.provider_event_id == provider_event_id,
                ProviderEvent.processed.is_(True),
            )
            .limit(1)
        )
        return existing is not None

    async def _existing_campaign_id(self, value: Any) -> Optional[int]:
        campaign_id = _as_int(value)
        if campaign_id is None:
            return None
        return await self.session.scalar(select(Campaign.id).where(Campaign.id == campaign_id))

    async def _record_failure(self, event: Dict[str, Any], event_type: str, error: str) -> None:
        try:
            campaign_id = await self._existing_campaign_id(event.get("campaign_id"))
            self.session.add(
                self._log_row(event, event_type, campaign_id=campaign_id, processed=False, error_message=error)
            )
            await self.session.commit()
        except SQLAlchemyError as log_error:
            await self.session.rollback()
            logger.error(f"Failed to record unprocessed webhook event: {log_error}")

    @staticmethod
    def _log_row(
        event: Dict[str, Any],
        event_type: str,
        campaign_id: Optional[int],
        processed: bool,
        recipient_email: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> ProviderEvent:
        provider_event_id = event.get("sg_event_id")
        return ProviderEvent(
            campaign_id=campaign_id,
            recipient_email=recipient_email or str(event.get("email") or ""),
            event_type=event_type,
            provider_message_id=str(event.get("sg_message_id") or "") or None,
            provider_event_id=str(provider_event_id) if provider_event_id else None,
            event_data=event,
            processed=processed,
            error_message=error_message,
        )


def get_webhook_service(db: AsyncSession = Depends(get_db)) -> WebhookService:
    return WebhookService(db)
