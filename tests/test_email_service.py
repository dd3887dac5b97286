"""
Test the SendGrid email gateway against a mocked SDK client.
"""
from datetime import date
from unittest.mock import MagicMock

import pytest
from python_http_client.exceptions import HTTPError

from app.core.exceptions import UpstreamException
from app.services.email_service import OutgoingEmail, SendGridEmailGateway, html_to_text


@pytest.fixture
def sendgrid_gateway():
    gateway = SendGridEmailGateway(api_key="SG.test", from_email="sender@example.com", from_name="Sender")
    gateway.sendgrid_client = MagicMock()
    return gateway


def message(to="a@example.com", recipient_id=1, **kwargs):
    return OutgoingEmail(
        to=to,
        subject="Hello",
        html_content="<p>Hi <b>there</b></p>",
        recipient_id=recipient_id,
        custom_args={"campaign_id": 7},
        **kwargs,
    )


def test_html_to_text():
    assert html_to_text("<p>Hi <b>there</b></p>") == "Hi there"


def test_build_mail_adds_custom_args(sendgrid_gateway):
    payload = sendgrid_gateway.build_mail(message()).get()

    assert payload["custom_args"] == {
        "campaign_id": "7",
        "recipient_id": "1",
        "recipient_email": "a@example.com",
    }
    assert payload["from"]["email"] == "sender@example.com"
    plain = next(c for c in payload["content"] if c["type"] == "text/plain")
    assert plain["value"] == "Hi there"


async def test_send_batch_reports_per_message_results(sendgrid_gateway):
    accepted = MagicMock(status_code=202, headers={"X-Message-Id": "abc123"})
    rejected = HTTPError(400, "Bad Request", b'{"errors":[{"message":"invalid"}]}', {})
    sendgrid_gateway.sendgrid_client.send.side_effect = [accepted, rejected, ConnectionError("reset")]

    results = await sendgrid_gateway.send_batch([
        message("a@example.com", 1),
        message("b@example.com", 2),
        message("c@example.com", 3),
    ])

    assert [r.recipient_id for r in results] == [1, 2, 3]
    assert results[0].success is True
    assert results[0].message_id == "abc123"
    assert results[1].success is False
    assert results[1].status_code == 400
    assert "invalid" in results[1].error
    assert results[2].success is False
    assert results[2].error == "reset"


async def test_send_batch_issues_one_request_per_message(sendgrid_gateway):
    send = sendgrid_gateway.sendgrid_client.send
    send.side_effect = [
        MagicMock(status_code=202, headers={"X-Message-Id": f"id-{n}"}) for n in range(3)
    ]

    results = await sendgrid_gateway.send_batch([
        message("a@example.com", 1),
        message("b@example.com", 2),
        message("c@example.com", 3),
    ])

    assert send.call_count == 3
    sent_to = [call.args[0].get()["custom_args"]["recipient_id"] for call in send.call_args_list]
    assert sent_to == ["1", "2", "3"]
    assert [r.message_id for r in results] == ["id-0", "id-1", "id-2"]


async def test_send_single(sendgrid_gateway):
    sendgrid_gateway.sendgrid_client.send.return_value = MagicMock(status_code=202, headers={})
    result = await sendgrid_gateway.send_single(message())
    assert result.success is True
    assert result.message_id is None


async def test_unconfigured_gateway_raises():
    gateway = SendGridEmailGateway(api_key=None, from_email="sender@example.com", from_name="Sender")
    assert gateway.is_configured is False
    with pytest.raises(UpstreamException):
        await gateway.send_batch([message()])


async def test_get_stats(sendgrid_gateway):
    stats_get = sendgrid_gateway.sendgrid_client.client.stats.get
    stats_get.return_value = MagicMock(body=b'[{"date": "2026-01-01", "stats": []}]')

    stats = await sendgrid_gateway.get_stats(date(2026, 1, 1), date(2026, 1, 2))

    assert stats == [{"date": "2026-01-01", "stats": []}]
    stats_get.assert_called_once_with(
        query_params={"start_date": "2026-01-01", "end_date": "2026-01-02", "aggregated_by": "day"}
    )


async def test_get_stats_failure_is_upstream_error(sendgrid_gateway):
    sendgrid_gateway.sendgrid_client.client.stats.get.side_effect = HTTPError(500, "Error", b"", {})
    with pytest.raises(UpstreamException):
        await sendgrid_gateway.get_stats(date(2026, 1, 1), date(2026, 1, 2))
