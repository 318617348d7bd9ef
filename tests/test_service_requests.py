from datetime import timedelta

import pytest

from socialtend_api.app.core.clock import utcnow
from socialtend_api.app.core.db import get_connection


@pytest.fixture
def make_request(client, organizer, professional):
    org_headers, _ = organizer
    _, pro = professional

    def _make(**overrides):
        payload = {
            "professional_id": pro["id"],
            "event_title": "Spring Gala",
            "request_message": "Can you bartend for 100 guests?",
            "total_amount": 20000,
            **overrides,
        }
        response = client.post("/api/v1/service-requests/", json=payload, headers=org_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


def _mark_paid(request_id):
    conn = get_connection()
    try:
        conn.execute(
            "UPDATE service_requests SET status = 'paid', payment_status = 'paid' WHERE id = ?", (request_id,)
        )
        conn.commit()
    finally:
        conn.close()


def _set_status(client, headers, request_id, status, message=None):
    body = {"status": status}
    if message is not None:
        body["response_message"] = message
    return client.patch(f"/api/v1/service-requests/{request_id}/status", json=body, headers=headers)


def test_create_request(make_request, organizer):
    _, org = organizer
    request = make_request()
    assert request["organizer_id"] == org["id"]
    assert request["status"] == "pending"
    assert request["payment_status"] == "unpaid"
    assert request["responded_at"] is None


def test_create_request_validation(client, organizer, professional):
    org_headers, org = organizer
    pro_headers, pro = professional
    base = {"professional_id": pro["id"], "event_title": "Gala", "request_message": "Hi"}

    assert client.post("/api/v1/service-requests/", json=base, headers=pro_headers).status_code == 403
    not_pro = client.post("/api/v1/service-requests/", json={**base, "professional_id": org["id"]}, headers=org_headers)
    assert not_pro.status_code == 400
    too_much_deposit = client.post(
        "/api/v1/service-requests/", json={**base, "deposit_amount": 500, "total_amount": 100}, headers=org_headers
    )
    assert too_much_deposit.status_code == 422


def test_list_by_role(client, make_request, organizer, professional, register):
    org_headers, _ = organizer
    pro_headers, _ = professional
    first = make_request()
    second = make_request(event_title="Summer Party")

    sent = client.get("/api/v1/service-requests/", headers=org_headers).json()
    assert [r["id"] for r in sent] == [second["id"], first["id"]]
    received = client.get("/api/v1/service-requests/", params={"role": "professional"}, headers=pro_headers).json()
    assert [r["id"] for r in received] == [second["id"], first["id"]]
    assert client.get("/api/v1/service-requests/", headers=pro_headers).json() == []

    _set_status(client, pro_headers, first["id"], "declined")
    declined = client.get(
        "/api/v1/service-requests/", params={"role": "professional", "status": "declined"}, headers=pro_headers
    ).json()
    assert [r["id"] for r in declined] == [first["id"]]


def test_get_request_participants_only(client, make_request, organizer, register):
    org_headers, _ = organizer
    stranger_headers, _ = register("stranger@example.com")
    request = make_request()
    assert client.get(f"/api/v1/service-requests/{request['id']}", headers=org_headers).status_code == 200
    assert client.get(f"/api/v1/service-requests/{request['id']}", headers=stranger_headers).status_code == 403
    assert client.get("/api/v1/service-requests/999", headers=org_headers).status_code == 404


def test_professional_accepts(client, make_request, professional):
    pro_headers, _ = professional
    request = make_request()
    response = _set_status(client, pro_headers, request["id"], "accepted", "Happy to help")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "accepted"
    assert body["response_message"] == "Happy to help"
    assert body["responded_at"] is not None


def test_only_professional_can_accept_or_decline(client, make_request, organizer):
    org_headers, _ = organizer
    request = make_request()
    assert _set_status(client, org_headers, request["id"], "accepted").status_code == 403
    assert _set_status(client, org_headers, request["id"], "declined").status_code == 403


def test_invalid_transitions(client, make_request, organizer, professional):
    org_headers, _ = organizer
    pro_headers, _ = professional
    request = make_request()

    assert _set_status(client, pro_headers, request["id"], "paid").status_code == 409
    assert _set_status(client, pro_headers, request["id"], "expired").status_code == 409
    assert _set_status(client, org_headers, request["id"], "completed").status_code == 409

    assert _set_status(client, pro_headers, request["id"], "declined").status_code == 200
    assert _set_status(client, pro_headers, request["id"], "accepted").status_code == 409
    assert _set_status(client, pro_headers, request["id"], "bogus").status_code == 422


def test_response_message_kept_and_responded_at_fixed(client, make_request, professional):
    pro_headers, _ = professional
    request = make_request()
    accepted = _set_status(client, pro_headers, request["id"], "accepted", "See you there").json()
    _mark_paid(request["id"])
    completed = _set_status(client, pro_headers, request["id"], "completed").json()
    assert completed["status"] == "completed"
    assert completed["response_message"] == "See you there"
    assert completed["responded_at"] == accepted["responded_at"]


def test_lazy_expiry(client, make_request, professional, organizer):
    pro_headers, _ = professional
    org_headers, _ = organizer
    past = (utcnow() - timedelta(hours=1)).isoformat()
    future = (utcnow() + timedelta(days=1)).isoformat()
    stale = make_request(expires_at=past)
    fresh = make_request(expires_at=future)

    listed = {r["id"]: r["status"] for r in client.get("/api/v1/service-requests/", headers=org_headers).json()}
    assert listed == {stale["id"]: "expired", fresh["id"]: "pending"}

    assert _set_status(client, pro_headers, stale["id"], "accepted").status_code == 409
    assert _set_status(client, pro_headers, fresh["id"], "accepted").status_code == 200


def test_expiry_applies_on_single_read(client, make_request, organizer):
    org_headers, _ = organizer
    stale = make_request(expires_at="2000-01-01T00:00:00Z")
    response = client.get(f"/api/v1/service-requests/{stale['id']}", headers=org_headers)
    assert response.json()["status"] == "expired"
