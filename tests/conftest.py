"""
Shared test fixtures.
"""
import os
import tempfile
from datetime import date
from typing import Any, Dict, List

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mkdtemp()}/mailpilot-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.database import Database
from app.main import app
from app.services.email_service import (
    DispatchResult,
    EmailGateway,
    OutgoingEmail,
    get_email_gateway,
)


class FakeEmailGateway(EmailGateway):
    """In-memory gateway recording every message it is asked to send."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.sent: List[OutgoingEmail] = []
        self.failing: set = set()
        self.raise_on_send = False
        self.stats: List[Dict[str, Any]] = [{"date": "2026-01-01", "stats": []}]
        self.stats_requests: List[tuple] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def send_batch(self, messages: List[OutgoingEmail]) -> List[DispatchResult]:
        if self.raise_on_send:
            raise RuntimeError("connection refused")

        results = []
        for message in messages:
            self.sent.append(message)
            if message.to in self.failing:
                results.append(
                    DispatchResult(
                        email=message.to,
                        recipient_id=message.recipient_id,
                        success=False,
                        status_code=400,
                        error="rejected",
                    )
                )
            else:
                results.append(
                    DispatchResult(
                        email=message.to,
                        recipient_id=message.recipient_id,
                        success=True,
                        status_code=202,
                        message_id=f"msg-{len(self.sent)}",
                    )
                )
        return results

    async def get_stats(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        self.stats_requests.append((start_date, end_date))
        return self.stats


@pytest.fixture
def gateway():
    return FakeEmailGateway()


@pytest.fixture
def client(tmp_path, monkeypatch, gateway):
    """Test client backed by a fresh SQLite database and the fake gateway."""
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{tmp_path}/api.db")
    app.dependency_overrides[get_email_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def session(tmp_path):
    """Async session on a fresh SQLite database."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path}/service.db")
    database.connect()
    await database.create_all()

    async with database.session() as db_session:
        yield db_session

    await database.disconnect()


def register_user(client, username="alice", email=None, password="secret123"):
    response = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def auth_headers(client):
    """Bearer headers for a freshly registered user."""
    data = register_user(client)
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def other_auth_headers(client):
    data = register_user(client, username="mallory")
    return {"Authorization": f"Bearer {data['token']}"}


def campaign_payload(emails=("a@example.com", "b@example.com", "c@example.com"), **overrides):
    payload = {
        "name": "Launch",
        "subject": "Hello there",
        "htmlContent": "<p>Hi <b>friend</b></p>",
        "recipients": [{"email": email, "firstName": "Test"} for email in emails],
    }
    payload.update(overrides)
    return payload


def create_campaign(client, headers, **overrides):
    response = client.post("/api/campaigns", json=campaign_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def get_recipients(client, headers, campaign_id):
    response = client.get(f"/api/campaigns/{campaign_id}", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]["recipients"]
