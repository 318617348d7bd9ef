import pytest

from socialtend_api.app.core import security
from socialtend_api.app.core.config import settings
from socialtend_api.app.core.rate_limit import RateLimiter, auth_rate_limit, message_rate_limit


def test_password_hashing():
    hashed = security.hash_password("secret1")
    assert hashed != security.hash_password("secret1")
    assert security.verify_password("secret1", hashed)
    assert not security.verify_password("secret2", hashed)
    assert not security.verify_password("secret1", None)
    assert not security.verify_password("secret1", "not-a-hash")


def test_token_roundtrip_and_tampering():
    token = security.create_access_token({"sub": "a@example.com", "user_id": 7, "role": "organizer"})
    claims = security.decode_access_token(token)
    assert claims["user_id"] == 7
    header, payload, signature = token.split(".")
    forged = security.create_access_token({"sub": "a@example.com", "user_id": 8, "role": "organizer"})
    assert security.decode_access_token(f"{header}.{forged.split('.')[1]}.{signature}") is None
    assert security.decode_access_token("only.two") is None


def test_token_signed_with_other_secret(monkeypatch):
    token = security.create_access_token({"user_id": 1})
    monkeypatch.setattr(settings, "secret_key", "another-secret")
    assert security.decode_access_token(token) is None


def test_expired_token(monkeypatch):
    now = 1_700_000_000
    monkeypatch.setattr(security.time, "time", lambda: now)
    token = security.create_access_token({"user_id": 1}, expires_delta=60)
    monkeypatch.setattr(security.time, "time", lambda: now + 61)
    assert security.decode_access_token(token) is None


def test_fixed_window_limiter():
    clock = [0.0]
    limiter = RateLimiter("test", max_requests=lambda: 2, window_seconds=lambda: 10, clock=lambda: clock[0])
    assert limiter.hit("1.2.3.4") is None
    assert limiter.hit("1.2.3.4") is None
    clock[0] = 4.0
    assert limiter.hit("1.2.3.4") == 6
    assert limiter.hit("5.6.7.8") is None
    clock[0] = 10.0
    assert limiter.hit("1.2.3.4") is None
    limiter.reset()
    assert limiter.hit("1.2.3.4") is None


@pytest.fixture
def limits_on(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    auth_rate_limit.reset()
    message_rate_limit.reset()
    yield
    auth_rate_limit.reset()
    message_rate_limit.reset()


def test_login_is_rate_limited(client, limits_on, monkeypatch):
    monkeypatch.setattr(settings, "auth_rate_limit", 3)
    body = {"email": "nobody@example.com", "password": "whatever"}
    statuses = [client.post("/api/v1/auth/login", json=body).status_code for _ in range(4)]
    assert statuses == [401, 401, 401, 429]
    blocked = client.post("/api/v1/auth/login", json=body)
    assert blocked.json()["detail"]["error"] == "Too many requests"
    assert int(blocked.headers["Retry-After"]) > 0


def test_messages_are_rate_limited(client, limits_on, monkeypatch, organizer, professional):
    monkeypatch.setattr(settings, "message_rate_limit", 2)
    org_headers, _ = organizer
    _, pro = professional
    conversation = client.post(
        "/api/v1/conversations/", json={"professional_id": pro["id"], "event_title": "Gala"}, headers=org_headers
    ).json()
    url = f"/api/v1/conversations/{conversation['id']}/messages"
    statuses = [client.post(url, json={"content": "hi"}, headers=org_headers).status_code for _ in range(3)]
    assert statuses == [201, 201, 429]


def test_unhandled_errors_return_json_500(client, monkeypatch):
    from socialtend_api.app.services.feedback_service import FeedbackService

    async def explode(cls, *args, **kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(FeedbackService, "create_feedback", classmethod(explode))
    response = client.post(
        "/api/v1/feedback/", json={"rating": 5, "recommendation_rating": 5, "experience_rating": 5}
    )
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_admin_token_with_non_ascii_bytes_is_forbidden(client, admin_headers):
    assert client.get("/api/v1/audit/logs", headers=admin_headers).status_code == 200
    response = client.get("/api/v1/audit/logs", headers={"Authorization": "Bearer admin-s\xe9cret".encode("latin-1")})
    assert response.status_code == 403
