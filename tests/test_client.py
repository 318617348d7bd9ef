import requests

from socialtend_client import SocialTendAPI


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else b"json"
        self.text = str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_login_stores_token_for_later_calls():
    session = FakeSession([
        FakeResponse(200, {"user": {"id": 1}, "token": "tok123"}),
        FakeResponse(200, [{"id": 5}]),
    ])
    client = SocialTendAPI(base_url="http://api.test/", session=session)
    data, error = client.login("a@example.com", "secret1")
    assert error is None and data["token"] == "tok123"
    assert session.calls[0]["url"] == "http://api.test/api/v1/auth/login"
    assert "Authorization" not in session.calls[0]["headers"]

    conversations, error = client.list_conversations(professional_id=None)
    assert conversations == [{"id": 5}]
    assert session.calls[1]["headers"]["Authorization"] == "Bearer tok123"
    assert session.calls[1]["params"] == {}


def test_http_error_is_returned_not_raised():
    session = FakeSession([FakeResponse(409, {"detail": "Cannot send messages to a closed conversation"})])
    client = SocialTendAPI(base_url="http://api.test", api_key="tok", session=session)
    data, error = client.send_message(3, "hello")
    assert data is None
    assert error == {"status_code": 409, "message": "Cannot send messages to a closed conversation"}
    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["url"] == "http://api.test/api/v1/conversations/3/messages"


def test_rate_limit_detail_is_stringified():
    session = FakeSession([FakeResponse(429, {"detail": {"error": "Too many requests", "retry_after": 30}})])
    client = SocialTendAPI(base_url="http://api.test", session=session)
    _, error = client.login("a@example.com", "x")
    assert error["status_code"] == 429
    assert "retry_after" in error["message"]


def test_network_error_and_listing_fallback():
    session = FakeSession([requests.ConnectionError("refused")])
    client = SocialTendAPI(base_url="http://api.test", session=session)
    professionals, error = client.list_professionals(service="dj")
    assert professionals == []
    assert error == {"status_code": None, "message": "refused"}
    assert session.calls[0]["params"] == {"service": "dj"}


def test_health_is_not_versioned():
    session = FakeSession([FakeResponse(200, {"status": "healthy"})])
    client = SocialTendAPI(base_url="http://api.test", session=session)
    data, _ = client.health()
    assert data["status"] == "healthy"
    assert session.calls[0]["url"] == "http://api.test/health/ready"
