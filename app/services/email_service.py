"""
Email dispatch gateway backed by SendGrid.

The gateway turns internal message requests into provider calls and reports
one ``DispatchResult`` per message. Provider rejections are returned as failed
results; only a missing configuration or a failed statistics query raises.
"""

import asyncio
import json
import re
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import Request
from pydantic import BaseModel, Field
from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, CustomArg

from app.core.config import Settings
from app.core.exceptions import UpstreamException
from app.core.logging import get_logger

logger = get_logger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


def html_to_text(html: str) -> str:
    """Plain-text fallback for an HTML body."""
    return _TAG_RE.sub("", html or "")


class OutgoingEmail(BaseModel):
    """A single message to hand to the provider."""
    to: str
    subject: str
    html_content: str
    text_content: Optional[str] = None
    to_name: Optional[str] = None
    recipient_id: Optional[int] = None
    custom_args: Dict[str, Any] = Field(default_factory=dict)


class DispatchResult(BaseModel):
    """Provider outcome for one message."""
    email: str
    success: bool
    recipient_id: Optional[int] = None
    message_id: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


class EmailGateway:
    """Interface for the external email provider."""

    @property
    def is_configured(self) -> bool:
        raise NotImplementedError

    async def send_single(self, message: OutgoingEmail) -> DispatchResult:
        results = await self.send_batch([message])
        return results[0]

    async def send_batch(self, messages: List[OutgoingEmail]) -> List[DispatchResult]:
        raise NotImplementedError

    async def get_stats(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class SendGridEmailGateway(EmailGateway):
    """SendGrid implementation of the dispatch gateway."""

    def __init__(self, api_key: Optional[str], from_email: str, from_name: str):
        self.from_email = from_email
        self.from_name = from_name
        self.sendgrid_client: Optional[SendGridAPIClient] = None
        if api_key:
            self.sendgrid_client = SendGridAPIClient(api_key=api_key)
            logger.info("SendGrid client initialized successfully")
        else:
            logger.warning("SendGrid API key not configured")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SendGridEmailGateway":
        return cls(
            api_key=settings.sendgrid_api_key,
            from_email=settings.sendgrid_from_email,
            from_name=settings.sendgrid_from_name,
        )

    @property
    def is_configured(self) -> bool:
        return self.sendgrid_client is not None

    def _require_client(self) -> SendGridAPIClient:
        if not self.sendgrid_client:
            raise UpstreamException("Email provider is not configured")
        return self.sendgrid_client

    def build_mail(self, message: OutgoingEmail) -> Mail:
        """Translate an internal message into a SendGrid ``Mail``."""
        mail = Mail(
            from_email=Email(self.from_email, self.from_name),
            to_emails=To(message.to, message.to_name),
            subject=message.subject,
            plain_text_content=message.text_content or html_to_text(message.html_content),
            html_content=message.html_content,
        )

        custom_args = dict(message.custom_args)
        if message.recipient_id is not None:
            custom_args.setdefault("recipient_id", message.recipient_id)
        custom_args.setdefault("recipient_email", message.to)

        for key, value in custom_args.items():
            if value is None:
                continue
            # SendGrid only accepts string values in custom args
            mail.add_custom_arg(CustomArg(key, str(value)))

        return mail

    def _send_one(self, client: SendGridAPIClient, message: OutgoingEmail) -> DispatchResult:
        try:
            response = client.send(self.build_mail(message))
        except HTTPError as e:
            body = e.body.decode("utf-8", "replace") if isinstance(e.body, bytes) else e.body
            logger.error("SendGrid rejected message", email=message.to, status_code=e.status_code, body=body)
            return DispatchResult(
                email=message.to,
                recipient_id=message.recipient_id,
                success=False,
                status_code=e.status_code,
                error=str(body or e.reason),
            )
        except Exception as e:
            logger.error(f"Failed to send email to {message.to}: {e}")
            return DispatchResult(
                email=message.to,
                recipient_id=message.recipient_id,
                success=False,
                error=str(e),
            )

        headers = getattr(response, "headers", None) or {}
        return DispatchResult(
            email=message.to,
            recipient_id=message.recipient_id,
            success=response.status_code in (200, 202),
            status_code=response.status_code,
            message_id=headers.get("X-Message-Id"),
        )

    def _send_all(self, client: SendGridAPIClient, messages: List[OutgoingEmail]) -> List[DispatchResult]:
        """Send sequentially, one request per message, so each result keeps its own X-Message-Id."""
        return [self._send_one(client, message) for message in messages]

    async def send_batch(self, messages: List[OutgoingEmail]) -> List[DispatchResult]:
        client = self._require_client()
        if not messages:
            return []

        results = await asyncio.to_thread(self._send_all, client, messages)

        sent = sum(1 for result in results if result.success)
        logger.info("Batch dispatch finished", requested=len(messages), sent=sent, failed=len(results) - sent)
        return results

    async def get_stats(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Fetch account-level daily statistics."""
        client = self._require_client()
        params = {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "aggregated_by": "day",
        }
        try:
            response = await asyncio.to_thread(client.client.stats.get, query_params=params)
            return json.loads(response.body or b"[]")
        except Exception as e:
            logger.error(f"Failed to fetch SendGrid statistics: {e}")
            raise UpstreamException("Failed to fetch provider statistics", details={"error": str(e)})


def get_email_gateway(request: Request) -> EmailGateway:
    """Dependency returning the gateway created at startup."""
    return request.app.state.email_gateway
