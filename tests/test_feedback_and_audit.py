from datetime import datetime

from socialtend_api.app.core.db import get_connection

FEEDBACK = {"rating": 5, "recommendation_rating": 4, "experience_rating": 3, "message": "Great app"}


def test_submit_feedback_anonymously(client):
    response = client.post("/api/v1/feedback/", json=FEEDBACK)
    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] is None
    assert body["category"] == "general"


def test_submit_feedback_attaches_user(client, organizer):
    headers, user = organizer
    response = client.post("/api/v1/feedback/", json={**FEEDBACK, "category": "exit_intent"}, headers=headers)
    assert response.json()["user_id"] == user["id"]
    # An invalid token is treated as anonymous rather than rejected.
    anonymous = client.post("/api/v1/feedback/", json=FEEDBACK, headers={"Authorization": "Bearer nope"})
    assert anonymous.status_code == 201
    assert anonymous.json()["user_id"] is None


def test_feedback_rating_bounds(client):
    assert client.post("/api/v1/feedback/", json={**FEEDBACK, "rating": 0}).status_code == 422
    assert client.post("/api/v1/feedback/", json={**FEEDBACK, "experience_rating": 6}).status_code == 422


def test_feedback_admin_views(client, organizer, admin_headers):
    headers, _ = organizer
    client.post("/api/v1/feedback/", json=FEEDBACK)
    client.post("/api/v1/feedback/", json={**FEEDBACK, "rating": 2, "category": "bug"})

    assert client.get("/api/v1/feedback/").status_code == 401
    assert client.get("/api/v1/feedback/", headers=headers).status_code == 403

    listed = client.get("/api/v1/feedback/", headers=admin_headers).json()
    assert [f["rating"] for f in listed] == [2, 5]
    bugs = client.get("/api/v1/feedback/", params={"category": "bug"}, headers=admin_headers).json()
    assert len(bugs) == 1

    summary = client.get("/api/v1/feedback/summary", headers=admin_headers).json()
    assert summary == {
        "count": 2,
        "average_rating": 3.5,
        "average_recommendation_rating": 4.0,
        "average_experience_rating": 3.0,
    }


def test_feedback_summary_empty(client, admin_headers):
    summary = client.get("/api/v1/feedback/summary", headers=admin_headers).json()
    assert summary["count"] == 0
    assert summary["average_rating"] is None


def test_admin_disabled_without_token(client, monkeypatch, admin_headers):
    from socialtend_api.app.core.config import settings

    monkeypatch.setattr(settings, "admin_static_token", "")
    assert client.get("/api/v1/feedback/", headers=admin_headers).status_code == 403


def test_audit_trail(client, organizer, professional, admin_headers):
    org_headers, org = organizer
    _, pro = professional
    client.post(
        "/api/v1/service-requests/",
        json={"professional_id": pro["id"], "event_title": "Gala", "request_message": "Hi"},
        headers=org_headers,
    )

    assert client.get("/api/v1/audit/logs", headers=org_headers).status_code == 403
    logs = client.get("/api/v1/audit/logs", headers=admin_headers).json()
    assert logs[0]["object_type"] == "service_request"
    assert logs[0]["details"] == {"professional_id": pro["id"]}

    users = client.get("/api/v1/audit/logs", params={"object_type": "user"}, headers=admin_headers).json()
    assert {log["user_id"] for log in users} == {org["id"], pro["id"]}
    mine = client.get("/api/v1/audit/logs", params={"user_id": org["id"], "limit": 1}, headers=admin_headers).json()
    assert len(mine) == 1


def test_audit_timestamps_are_utc(client, organizer, admin_headers):
    logs = client.get("/api/v1/audit/logs", headers=admin_headers).json()
    stamp = datetime.fromisoformat(logs[0]["timestamp"].replace("Z", "+00:00"))
    assert stamp.utcoffset().total_seconds() == 0


def test_audit_date_filters(client, admin_headers):
    conn = get_connection()
    try:
        conn.executemany(
            "INSERT INTO audit_logs (user_id, action, object_type, timestamp) VALUES (NULL, ?, 'test', ?)",
            [
                ("late_17th", "2026-10-17T23:59:59+00:00"),
                ("midnight", "2026-10-18T00:00:00+00:00"),
                ("evening", "2026-10-18T18:30:00.250000+00:00"),
                ("next_day", "2026-10-19T00:00:00+00:00"),
            ],
        )
        conn.commit()
    finally:
        conn.close()

    def actions(**params):
        response = client.get("/api/v1/audit/logs", params={"object_type": "test", **params}, headers=admin_headers)
        assert response.status_code == 200, response.text
        return [log["action"] for log in response.json()]

    assert actions(end_date="2026-10-18") == ["evening", "midnight", "late_17th"]
    assert actions(start_date="2026-10-18", end_date="2026-10-18") == ["evening", "midnight"]
    assert actions(start_date="2026-10-18T12:00:00Z") == ["next_day", "evening"]
    assert actions(start_date="2026-10-18T20:00:00+02:00") == ["next_day", "evening"]
    assert actions(end_date="2026-10-18T18:30:00Z") == ["midnight", "late_17th"]

    bad = client.get("/api/v1/audit/logs", params={"start_date": "yesterday"}, headers=admin_headers)
    assert bad.status_code == 400
