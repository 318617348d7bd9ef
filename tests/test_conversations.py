import pytest

from socialtend_api.app.core.db import get_connection


@pytest.fixture
def conversation(client, organizer, professional):
    org_headers, _ = organizer
    _, pro = professional
    response = client.post(
        "/api/v1/conversations/",
        json={"professional_id": pro["id"], "event_title": "Spring Gala", "event_date": "2026-05-02"},
        headers=org_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _send(client, headers, conversation_id, content):
    response = client.post(
        f"/api/v1/conversations/{conversation_id}/messages", json={"content": content}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_conversation_defaults_organizer_details(conversation, organizer):
    _, org = organizer
    assert conversation["organizer_id"] == org["id"]
    assert conversation["organizer_name"] == "Olivia Organizer"
    assert conversation["organizer_email"] == "organizer@example.com"
    assert conversation["status"] == "active"


def test_create_conversation_reuses_open_thread(client, conversation, organizer, professional):
    org_headers, _ = organizer
    _, pro = professional
    again = client.post(
        "/api/v1/conversations/",
        json={"professional_id": pro["id"], "event_title": "Spring Gala"},
        headers=org_headers,
    )
    assert again.status_code == 200
    assert again.json()["id"] == conversation["id"]

    other_event = client.post(
        "/api/v1/conversations/",
        json={"professional_id": pro["id"], "event_title": "Summer Party"},
        headers=org_headers,
    )
    assert other_event.status_code == 201
    assert other_event.json()["id"] != conversation["id"]


def test_closed_conversation_is_not_reused(client, conversation, organizer, professional):
    org_headers, _ = organizer
    _, pro = professional
    assert client.delete(f"/api/v1/conversations/{conversation['id']}", headers=org_headers).status_code == 200
    response = client.post(
        "/api/v1/conversations/",
        json={"professional_id": pro["id"], "event_title": "Spring Gala"},
        headers=org_headers,
    )
    assert response.status_code == 201
    assert response.json()["id"] != conversation["id"]


def test_create_conversation_checks_roles(client, organizer, professional, register):
    org_headers, org = organizer
    pro_headers, pro = professional
    as_professional = client.post(
        "/api/v1/conversations/", json={"professional_id": pro["id"], "event_title": "Gala"}, headers=pro_headers
    )
    assert as_professional.status_code == 403
    not_a_professional = client.post(
        "/api/v1/conversations/", json={"professional_id": org["id"], "event_title": "Gala"}, headers=org_headers
    )
    assert not_a_professional.status_code == 400


def test_list_conversations_only_own(client, conversation, organizer, professional, register):
    org_headers, _ = organizer
    pro_headers, pro = professional
    stranger_headers, _ = register("stranger@example.com")

    assert [c["id"] for c in client.get("/api/v1/conversations/", headers=org_headers).json()] == [conversation["id"]]
    assert [c["id"] for c in client.get("/api/v1/conversations/", headers=pro_headers).json()] == [conversation["id"]]
    assert client.get("/api/v1/conversations/", headers=stranger_headers).json() == []
    filtered = client.get("/api/v1/conversations/", params={"professional_id": pro["id"] + 100}, headers=org_headers)
    assert filtered.json() == []

    assert client.get(f"/api/v1/conversations/{conversation['id']}", headers=stranger_headers).status_code == 403
    assert client.get("/api/v1/conversations/999", headers=org_headers).status_code == 404


def test_messages_flow_and_polling(client, conversation, organizer, professional):
    org_headers, _ = organizer
    pro_headers, _ = professional
    first = _send(client, org_headers, conversation["id"], "Hi, are you available?")
    second = _send(client, pro_headers, conversation["id"], "Yes!")

    assert first["sender_type"] == "organizer"
    assert first["sender_name"] == "Olivia Organizer"
    assert second["sender_type"] == "professional"
    assert second["is_read"] is False

    messages = client.get(f"/api/v1/conversations/{conversation['id']}/messages", headers=pro_headers).json()
    assert [m["id"] for m in messages] == [first["id"], second["id"]]

    newer = client.get(
        f"/api/v1/conversations/{conversation['id']}/messages",
        params={"since_id": first["id"]},
        headers=org_headers,
    ).json()
    assert [m["id"] for m in newer] == [second["id"]]


def test_message_validation(client, conversation, organizer):
    org_headers, _ = organizer
    url = f"/api/v1/conversations/{conversation['id']}/messages"
    assert client.post(url, json={"content": ""}, headers=org_headers).status_code == 422
    assert client.post(url, json={"content": "x" * 5001}, headers=org_headers).status_code == 422
    assert client.post(url, json={"content": "x" * 5000}, headers=org_headers).status_code == 201


def test_cannot_message_closed_conversation(client, conversation, organizer, professional):
    org_headers, _ = organizer
    pro_headers, _ = professional
    closed = client.delete(f"/api/v1/conversations/{conversation['id']}", headers=pro_headers)
    assert closed.json()["status"] == "closed"

    response = client.post(
        f"/api/v1/conversations/{conversation['id']}/messages", json={"content": "hello?"}, headers=org_headers
    )
    assert response.status_code == 409
    assert client.get("/api/v1/conversations/", headers=org_headers).json() == []

    reopen = client.patch(
        f"/api/v1/conversations/{conversation['id']}/status", json={"status": "active"}, headers=org_headers
    )
    assert reopen.status_code == 409


def test_archive_conversation(client, conversation, organizer):
    org_headers, _ = organizer
    response = client.patch(
        f"/api/v1/conversations/{conversation['id']}/status", json={"status": "archived"}, headers=org_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "archived"
    invalid = client.patch(
        f"/api/v1/conversations/{conversation['id']}/status", json={"status": "closed"}, headers=org_headers
    )
    assert invalid.status_code == 422


def test_read_tracking(client, conversation, organizer, professional):
    org_headers, _ = organizer
    pro_headers, _ = professional
    cid = conversation["id"]
    _send(client, org_headers, cid, "one")
    _send(client, org_headers, cid, "two")
    _send(client, pro_headers, cid, "reply")

    pro_unread = client.get("/api/v1/conversations/unread-count", headers=pro_headers).json()
    assert pro_unread == {"total": 2, "conversations": {str(cid): 2}}
    org_unread = client.get("/api/v1/conversations/unread-count", headers=org_headers).json()
    assert org_unread["total"] == 1

    marked = client.post(f"/api/v1/conversations/{cid}/read", headers=pro_headers)
    assert marked.status_code == 200
    assert marked.json() == {"success": True, "updated": 2}

    assert client.get("/api/v1/conversations/unread-count", headers=pro_headers).json()["total"] == 0
    # Marking is one-sided: the organizer still has the reply unread.
    assert client.get("/api/v1/conversations/unread-count", headers=org_headers).json()["total"] == 1

    messages = client.get(f"/api/v1/conversations/{cid}/messages", headers=org_headers).json()
    assert [m["is_read"] for m in messages] == [True, True, False]

    as_other_side = client.post(
        f"/api/v1/conversations/{cid}/read", json={"sender_type": "organizer"}, headers=pro_headers
    )
    assert as_other_side.status_code == 403


def test_unread_count_ignores_closed_conversations(client, conversation, organizer, professional):
    org_headers, _ = organizer
    pro_headers, _ = professional
    _send(client, org_headers, conversation["id"], "ping")
    client.delete(f"/api/v1/conversations/{conversation['id']}", headers=org_headers)
    assert client.get("/api/v1/conversations/unread-count", headers=pro_headers).json()["total"] == 0


def test_messages_ordered_by_timestamp(client, conversation, organizer):
    org_headers, _ = organizer
    first_sent = _send(client, org_headers, conversation["id"], "first")
    backdated = _send(client, org_headers, conversation["id"], "second")
    conn = get_connection()
    try:
        conn.execute("UPDATE messages SET timestamp = ? WHERE id = ?", ("2020-01-01T00:00:00+00:00", backdated["id"]))
        conn.commit()
    finally:
        conn.close()
    messages = client.get(f"/api/v1/conversations/{conversation['id']}/messages", headers=org_headers).json()
    assert [m["id"] for m in messages] == [backdated["id"], first_sent["id"]]


def test_legacy_message_routes(client, conversation, organizer, professional, register):
    org_headers, _ = organizer
    pro_headers, _ = professional
    stranger_headers, _ = register("lurker@example.com")

    created = client.post(
        "/api/v1/messages", json={"conversation_id": conversation["id"], "content": "legacy hello"}, headers=org_headers
    )
    assert created.status_code == 201
    assert created.json()["sender_type"] == "organizer"

    listed = client.get(f"/api/v1/messages/{conversation['id']}", headers=pro_headers)
    assert [m["content"] for m in listed.json()] == ["legacy hello"]

    assert client.get(f"/api/v1/messages/{conversation['id']}", headers=stranger_headers).status_code == 403
    missing = client.post("/api/v1/messages", json={"conversation_id": 999, "content": "x"}, headers=org_headers)
    assert missing.status_code == 404
