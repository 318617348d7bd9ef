import pytest
from fastapi.testclient import TestClient

from socialtend_api.app.core.config import settings
from socialtend_api.app.core.db import init_db
from socialtend_api.app.core.logging_config import recent_logs
from socialtend_api.app.core.rate_limit import auth_rate_limit, message_rate_limit
from socialtend_api.app.main import app
from socialtend_api.app.services.email_service import EmailService


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every test at a fresh database and switch off external services."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    monkeypatch.setattr(settings, "stripe_secret_key", "")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "")
    monkeypatch.setattr(settings, "sendgrid_api_key", "")
    monkeypatch.setattr(settings, "admin_static_token", "admin-secret")
    auth_rate_limit.reset()
    message_rate_limit.reset()
    recent_logs.clear()
    init_db()
    yield


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing email instead of calling SendGrid."""
    outbox = []

    async def fake_send_email(cls, to, subject, html_body, text=None):
        outbox.append({"to": to, "subject": subject, "html": html_body, "text": text})
        return True

    monkeypatch.setattr(EmailService, "send_email", classmethod(fake_send_email))
    return outbox


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return ``(headers, user)``."""

    def _register(email, role="organizer", password="secret1", first_name="Test", last_name="User"):
        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": email,
                "password": password,
                "role": role,
                "first_name": first_name,
                "last_name": last_name,
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register


@pytest.fixture
def organizer(register):
    return register("organizer@example.com", role="organizer", first_name="Olivia", last_name="Organizer")


@pytest.fixture
def professional(register):
    return register("pro@example.com", role="professional", first_name="Pat", last_name="Pro")


@pytest.fixture
def admin_headers():
    return {"Authorization": "Bearer admin-secret"}
