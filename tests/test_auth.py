from datetime import timedelta

from socialtend_api.app.core.clock import utcnow
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.core.security import decode_access_token


def _user_row(email):
    conn = get_connection()
    try:
        return conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    finally:
        conn.close()


def test_register_returns_user_and_token(client, sent_emails):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "maya@example.com", "password": "secret1", "role": "professional", "first_name": "Maya"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "maya@example.com"
    assert body["user"]["role"] == "professional"
    assert body["user"]["is_email_verified"] is False
    assert "password" not in body["user"]
    claims = decode_access_token(body["token"])
    assert claims["user_id"] == body["user"]["id"]
    assert claims["role"] == "professional"
    assert sent_emails[0]["to"] == "maya@example.com"
    assert "/verify-email?token=" in sent_emails[0]["text"]


def test_register_duplicate_email(client, register):
    register("dup@example.com")
    response = client.post("/api/v1/auth/register", json={"email": "dup@example.com", "password": "secret1"})
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists with this email"


def test_register_rejects_short_password_and_unknown_role(client):
    short = client.post("/api/v1/auth/register", json={"email": "a@example.com", "password": "123"})
    assert short.status_code == 422
    bad_role = client.post(
        "/api/v1/auth/register", json={"email": "b@example.com", "password": "secret1", "role": "admin"}
    )
    assert bad_role.status_code == 422


def test_login_success_and_failure(client, register):
    register("login@example.com", password="secret1")
    ok = client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": "secret1"})
    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "login@example.com"

    wrong_password = client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": "nope"})
    unknown_email = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "secret1"})
    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json()["detail"] == unknown_email.json()["detail"]


def test_me_requires_token(client, organizer):
    headers, user = organizer
    assert client.get("/api/v1/auth/me").status_code == 401
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
    response = client.get("/api/v1/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]


def test_token_of_deleted_user_is_rejected(client, organizer):
    headers, user = organizer
    conn = get_connection()
    try:
        conn.execute("DELETE FROM users WHERE id = ?", (user["id"],))
        conn.commit()
    finally:
        conn.close()
    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401


def test_switch_role_issues_new_token(client, organizer):
    headers, _ = organizer
    response = client.post("/api/v1/auth/switch-role", json={"role": "professional"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["role"] == "professional"
    assert decode_access_token(body["token"])["role"] == "professional"
    # The stored role wins, so the old token now acts as a professional too.
    forbidden = client.post(
        "/api/v1/service-requests/",
        json={"professional_id": 1, "event_title": "Gala", "request_message": "Hi"},
        headers=headers,
    )
    assert forbidden.status_code == 403

    invalid = client.post("/api/v1/auth/switch-role", json={"role": "admin"}, headers=headers)
    assert invalid.status_code == 422


def test_verify_email(client, register):
    register("verify@example.com")
    token = _user_row("verify@example.com")["email_verification_token"]
    response = client.get("/api/v1/auth/verify-email", params={"token": token})
    assert response.status_code == 200
    row = _user_row("verify@example.com")
    assert row["is_email_verified"] == 1
    assert row["email_verification_token"] is None

    again = client.get("/api/v1/auth/verify-email", params={"token": token})
    assert again.status_code == 400


def test_verify_email_expired_token(client, register):
    register("late@example.com")
    conn = get_connection()
    try:
        conn.execute(
            "UPDATE users SET email_verification_expires = ? WHERE email = ?",
            ((utcnow() - timedelta(minutes=1)).isoformat(), "late@example.com"),
        )
        conn.commit()
    finally:
        conn.close()
    token = _user_row("late@example.com")["email_verification_token"]
    response = client.get("/api/v1/auth/verify-email", params={"token": token})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired verification token"


def test_forgot_password_is_generic(client, register, sent_emails):
    register("reset@example.com")
    sent_emails.clear()
    known = client.post("/api/v1/auth/forgot-password", json={"email": "reset@example.com"})
    unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [mail["to"] for mail in sent_emails] == ["reset@example.com"]
    assert _user_row("reset@example.com")["password_reset_token"]


def test_reset_password_flow(client, register):
    register("flow@example.com", password="oldpass")
    client.post("/api/v1/auth/forgot-password", json={"email": "flow@example.com"})
    token = _user_row("flow@example.com")["password_reset_token"]

    too_short = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "123"})
    assert too_short.status_code == 422

    response = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "newpass"})
    assert response.status_code == 200
    assert _user_row("flow@example.com")["password_reset_token"] is None

    assert client.post("/api/v1/auth/login", json={"email": "flow@example.com", "password": "oldpass"}).status_code == 401
    assert client.post("/api/v1/auth/login", json={"email": "flow@example.com", "password": "newpass"}).status_code == 200

    reused = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "another"})
    assert reused.status_code == 400
