"""SocialTend API client.

A small wrapper around the SocialTend REST API for scripts and
integrations.  It uses the ``requests`` library internally.

Every call returns a tuple ``(data, error)``: on success ``data`` holds
the decoded JSON response and ``error`` is ``None``; on failure
``data`` is ``None`` (or an empty list for listings) and ``error`` is a
dictionary with ``status_code`` and ``message``.  The client never
raises for HTTP or network errors.

Example::

    client = SocialTendAPI(base_url="http://localhost:8000")
    auth, error = client.login("maya@example.com", "secret1")
    pros, error = client.list_professionals(service="bartending")
    conversation, error = client.start_conversation(pros[0]["user_id"], "Spring Gala")
    client.send_message(conversation["id"], "Are you free on May 2nd?")

After ``login`` or ``register`` the returned token is stored and sent
as ``Authorization: Bearer <token>`` on later calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]


class SocialTendAPI:
    """Client for the SocialTend marketplace API."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        api_prefix: str = "/api/v1",
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the server, e.g. ``https://socialtend.example``.
            api_key: Optional bearer token, e.g. one issued earlier by
                :meth:`login` or the admin token for admin endpoints.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            api_prefix: Path prefix of the versioned API.
        """
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()

    def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None,
        json_body: Any | None = None, versioned: bool = True,
    ) -> Result:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PATCH``, ``DELETE``, etc.).
            path: Path relative to the API prefix (e.g. ``/conversations``).
            params: Query parameters; ``None`` values are dropped.
            json_body: JSON body to send with the request.
            versioned: Prefix ``path`` with :attr:`api_prefix`.
        Returns:
            A tuple ``(data, error)``.
        """
        url = f"{self.base_url}{self.api_prefix if versioned else ''}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=15,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    detail = err_json.get("detail") or err_json.get("message") or err_json
                    message = detail if isinstance(detail, str) else str(detail)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    def _list(self, path: str, params: Dict[str, Any] | None = None) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request("GET", path, params=params)
        if error:
            return [], error
        return data if isinstance(data, list) else [], None

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def _store_token(self, result: Result) -> Result:
        data, error = result
        if data and data.get("token"):
            self.api_key = data["token"]
        return data, error

    def register(
        self,
        email: str,
        password: str,
        role: str = "organizer",
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Result:
        """Create an account and keep its token for later calls."""
        payload = {"email": email, "password": password, "role": role, "first_name": first_name, "last_name": last_name}
        return self._store_token(self._request("POST", "/auth/register", json_body=payload))

    def login(self, email: str, password: str) -> Result:
        return self._store_token(self._request("POST", "/auth/login", json_body={"email": email, "password": password}))

    def me(self) -> Result:
        return self._request("GET", "/auth/me")

    def switch_role(self, role: str) -> Result:
        return self._store_token(self._request("POST", "/auth/switch-role", json_body={"role": role}))

    def forgot_password(self, email: str) -> Result:
        return self._request("POST", "/auth/forgot-password", json_body={"email": email})

    # ------------------------------------------------------------------
    # Profiles and directory
    # ------------------------------------------------------------------
    def create_professional_profile(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/profiles/professional", json_body=payload)

    def update_professional_profile(self, user_id: Any, payload: Dict[str, Any]) -> Result:
        return self._request("PUT", f"/profiles/professional/{user_id}", json_body=payload)

    def create_organizer_profile(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/profiles/organizer", json_body=payload)

    def list_professionals(self, **filters: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """List professionals.

        Accepts the directory filters as keyword arguments: ``location``,
        ``service``, ``min_rate``, ``max_rate``, ``search``, ``limit`` and
        ``offset``.
        """
        return self._list("/professionals/", params=filters)

    def get_professional(self, user_id: Any) -> Result:
        return self._request("GET", f"/professionals/{user_id}")

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------
    def list_conversations(self, **filters: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list("/conversations/", params=filters)

    def start_conversation(self, professional_id: Any, event_title: str, **details: Any) -> Result:
        """Open (or reuse) a conversation with a professional about an event."""
        payload = {"professional_id": professional_id, "event_title": event_title, **details}
        return self._request("POST", "/conversations/", json_body=payload)

    def get_messages(self, conversation_id: Any, since_id: Optional[int] = None) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list(f"/conversations/{conversation_id}/messages", params={"since_id": since_id})

    def send_message(self, conversation_id: Any, content: str, sender_name: Optional[str] = None) -> Result:
        payload = {"content": content, "sender_name": sender_name}
        return self._request("POST", f"/conversations/{conversation_id}/messages", json_body=payload)

    def mark_read(self, conversation_id: Any) -> Result:
        return self._request("POST", f"/conversations/{conversation_id}/read")

    def unread_count(self) -> Result:
        return self._request("GET", "/conversations/unread-count")

    def close_conversation(self, conversation_id: Any) -> Result:
        return self._request("DELETE", f"/conversations/{conversation_id}")

    # ------------------------------------------------------------------
    # Service requests and payments
    # ------------------------------------------------------------------
    def create_service_request(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/service-requests/", json_body=payload)

    def list_service_requests(self, role: Optional[str] = None, status: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list("/service-requests/", params={"role": role, "status": status})

    def update_service_request_status(self, request_id: Any, status: str, response_message: Optional[str] = None) -> Result:
        payload = {"status": status, "response_message": response_message}
        return self._request("PATCH", f"/service-requests/{request_id}/status", json_body=payload)

    def create_payment_intent(self, service_request_id: Any, amount: int, total_amount: Optional[int] = None) -> Result:
        """Start a deposit payment.  Amounts are in cents."""
        payload = {"service_request_id": service_request_id, "amount": amount, "total_amount": total_amount}
        return self._request("POST", "/payments/create-payment-intent", json_body=payload)

    def confirm_payment(self, service_request_id: Any, payment_intent_id: str) -> Result:
        payload = {"service_request_id": service_request_id, "payment_intent_id": payment_intent_id}
        return self._request("POST", "/payments/confirm", json_body=payload)

    # ------------------------------------------------------------------
    # Feedback and health
    # ------------------------------------------------------------------
    def create_feedback(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/feedback/", json_body=payload)

    def health(self) -> Result:
        return self._request("GET", "/health/ready", versioned=False)
