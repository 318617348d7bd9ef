"""
Business logic for deposit payments through Stripe.

The flow is:

1. ``create_payment_intent`` asks Stripe for a PaymentIntent for an
   accepted service request and stores its id on the request
   (``payment_status = pending``).  The client completes the payment
   with the returned ``client_secret``.
2. ``confirm_payment`` (called by the client) or the
   ``payment_intent.succeeded`` webhook retrieves/receives the intent,
   records a ``payments`` row with the platform fee split and marks the
   request as paid.  Both paths share ``_record_success`` and are
   idempotent on the intent id.

Stripe is called over its REST API with ``httpx``; requests are form
encoded as Stripe expects.
"""

import hashlib
import hmac
import json
import logging
import sqlite3
import time
from typing import Any, Dict, List, Optional

import httpx

from socialtend_api.app.core.clock import to_utc, utcnow_iso
from socialtend_api.app.core.config import settings
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.schemas.payment import PaymentIntentCreate, PaymentIntentRead, PaymentRead
from socialtend_api.app.schemas.service_request import ServiceRequestRead
from socialtend_api.app.services.audit_service import AuditService
from socialtend_api.app.services.service_request_service import InvalidTransitionError, ServiceRequestService

logger = logging.getLogger(__name__)

WEBHOOK_TOLERANCE_SECONDS = 300


class PaymentsNotConfiguredError(RuntimeError):
    """Raised when Stripe keys are missing."""


class PaymentProviderError(RuntimeError):
    """Raised when Stripe rejects a call or cannot be reached."""


def calculate_fee_split(amount: int, fee_percent: Optional[float] = None) -> tuple:
    """Return ``(platform_fee, professional_earnings)`` for ``amount`` cents."""
    percent = settings.platform_fee_percent if fee_percent is None else fee_percent
    platform_fee = int(round(amount * percent / 100))
    return platform_fee, amount - platform_fee


def verify_stripe_signature(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = WEBHOOK_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> None:
    """Check a ``Stripe-Signature`` header against the raw request body.

    The header looks like ``t=1700000000,v1=<hex>[,v1=<hex>...]``.  The
    expected signature is HMAC-SHA256 of ``"{t}.{body}"`` keyed with the
    endpoint secret.  Raises ``ValueError`` when the header is missing,
    malformed, stale or does not match.
    """
    if not signature_header:
        raise ValueError("Missing Stripe-Signature header")
    timestamp = None
    signatures: List[str] = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    if not timestamp or not signatures:
        raise ValueError("Malformed Stripe-Signature header")
    try:
        signed_at = int(timestamp)
    except ValueError as exc:
        raise ValueError("Malformed Stripe-Signature timestamp") from exc
    current = time.time() if now is None else now
    if abs(current - signed_at) > tolerance:
        raise ValueError("Stripe signature timestamp outside the tolerance zone")
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest().encode("ascii")
    if not any(hmac.compare_digest(expected, candidate.encode("utf-8")) for candidate in signatures):
        raise ValueError("Stripe signature does not match")


def _payment_from_row(row: sqlite3.Row) -> PaymentRead:
    return PaymentRead(
        id=row["id"],
        service_request_id=row["service_request_id"],
        organizer_id=row["organizer_id"],
        professional_id=row["professional_id"],
        amount=row["amount"],
        currency=row["currency"],
        stripe_payment_intent_id=row["stripe_payment_intent_id"],
        type=row["type"],
        status=row["status"],
        platform_fee=row["platform_fee"],
        professional_earnings=row["professional_earnings"],
        created_at=to_utc(row["created_at"]),
        updated_at=to_utc(row["updated_at"]),
    )


class PaymentService:
    """Service for Stripe deposits and the payments ledger."""

    @classmethod
    def is_configured(cls) -> bool:
        return bool(settings.stripe_secret_key)

    @classmethod
    async def _stripe_request(cls, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not cls.is_configured():
            raise PaymentsNotConfiguredError("Payment processing is not configured")
        url = f"{settings.stripe_api_base.rstrip('/')}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=30.0, auth=(settings.stripe_secret_key, "")) as client:
                response = await client.request(method, url, data=data)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Stripe %s %s failed with %s: %s", method, path, exc.response.status_code, exc.response.text)
            raise PaymentProviderError("Payment provider rejected the request") from exc
        except httpx.HTTPError as exc:
            logger.error("Stripe %s %s failed: %s", method, path, exc)
            raise PaymentProviderError("Payment provider is unavailable") from exc

    @classmethod
    async def _create_stripe_payment_intent(
        cls, amount: int, currency: str, metadata: Dict[str, Any], description: str
    ) -> Dict[str, Any]:
        form = {
            "amount": str(amount),
            "currency": currency,
            "description": description,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)
        return await cls._stripe_request("POST", "payment_intents", data=form)

    @classmethod
    async def _retrieve_stripe_payment_intent(cls, payment_intent_id: str) -> Dict[str, Any]:
        return await cls._stripe_request("GET", f"payment_intents/{payment_intent_id}")

    @classmethod
    async def create_payment_intent(
        cls, service_request: ServiceRequestRead, data: PaymentIntentCreate
    ) -> PaymentIntentRead:
        """Create a Stripe PaymentIntent for the deposit of ``service_request``.

        The caller must already have checked that the current user owns
        the request.  Raises ``InvalidTransitionError`` if the request is
        not accepted, ``ValueError`` for invalid amounts and
        ``PaymentsNotConfiguredError`` when Stripe is not set up.
        """
        if not cls.is_configured():
            raise PaymentsNotConfiguredError("Payment processing is not configured")
        if service_request.status != "accepted":
            raise InvalidTransitionError("Deposits can only be paid for accepted service requests")
        if data.amount <= 0:
            raise ValueError("Payment amount must be positive")
        total = data.total_amount if data.total_amount is not None else service_request.total_amount
        if total is not None and data.amount > total:
            raise ValueError("Deposit cannot exceed the total amount")
        intent = await cls._create_stripe_payment_intent(
            amount=data.amount,
            currency=settings.payment_currency,
            metadata={
                "service_request_id": service_request.id,
                "organizer_id": service_request.organizer_id,
                "professional_id": service_request.professional_id,
            },
            description=f"Deposit for {service_request.event_title}",
        )
        await ServiceRequestService.set_payment_intent(service_request.id, intent["id"], data.amount, data.total_amount)
        logger.info("Created payment intent %s for service request %s", intent["id"], service_request.id)
        await AuditService.record(
            service_request.organizer_id,
            "create",
            "payment_intent",
            service_request.id,
            {"payment_intent_id": intent["id"], "amount": data.amount},
        )
        return PaymentIntentRead(client_secret=intent.get("client_secret"), payment_intent_id=intent["id"])

    @classmethod
    async def confirm_payment(cls, service_request: ServiceRequestRead, payment_intent_id: str) -> ServiceRequestRead:
        """Verify with Stripe that the deposit succeeded and record it.

        Raises ``PermissionError`` when the intent belongs to another
        request and ``ValueError`` when it has not succeeded.
        """
        existing = await cls.get_payment_by_intent(payment_intent_id)
        if existing:
            if existing.service_request_id != service_request.id:
                raise PermissionError("Payment intent does not belong to this service request")
            if service_request.payment_status == "paid":
                return service_request
            return await ServiceRequestService.mark_paid(service_request.id, payment_intent_id)
        intent = await cls._retrieve_stripe_payment_intent(payment_intent_id)
        metadata = intent.get("metadata") or {}
        if str(metadata.get("service_request_id")) != str(service_request.id):
            raise PermissionError("Payment intent does not belong to this service request")
        if intent.get("status") != "succeeded":
            raise ValueError(f"Payment has not succeeded (status: {intent.get('status')})")
        return await cls._record_success(intent)

    @classmethod
    async def _record_success(cls, intent: Dict[str, Any]) -> ServiceRequestRead:
        """Insert the payment row and mark the request paid in one transaction."""
        metadata = intent.get("metadata") or {}
        try:
            request_id = int(metadata["service_request_id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError("Payment intent is not linked to a service request") from exc
        service_request = await ServiceRequestService.get_request(request_id)
        if service_request is None:
            raise ValueError(f"Service request {request_id} does not exist")
        amount = int(intent["amount"])
        platform_fee, earnings = calculate_fee_split(amount)
        now = utcnow_iso()
        recorded = True
        conn = get_connection()
        try:
            try:
                conn.execute(
                    """
                    INSERT INTO payments (service_request_id, organizer_id, professional_id, amount, currency,
                                          stripe_payment_intent_id, type, status, platform_fee,
                                          professional_earnings, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, 'deposit', 'succeeded', ?, ?, ?, ?)
                    """,
                    (
                        request_id,
                        service_request.organizer_id,
                        service_request.professional_id,
                        amount,
                        intent.get("currency") or settings.payment_currency,
                        intent["id"],
                        platform_fee,
                        earnings,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError:
                # Recorded concurrently by the webhook or a second confirm.
                recorded = False
                logger.info("Payment intent %s already recorded", intent["id"])
            updated = await ServiceRequestService.mark_paid(request_id, intent["id"], conn=conn)
            conn.commit()
        finally:
            conn.close()
        if not recorded:
            return updated
        logger.info(
            "Recorded deposit %s for service request %s: %s %s (fee %s)",
            intent["id"], request_id, amount, intent.get("currency"), platform_fee,
        )
        await AuditService.record(
            service_request.organizer_id,
            "create",
            "payment",
            request_id,
            {"payment_intent_id": intent["id"], "amount": amount, "platform_fee": platform_fee},
        )
        return updated

    @classmethod
    async def handle_webhook(cls, payload: bytes, signature_header: Optional[str]) -> str:
        """Verify and process a Stripe webhook event; returns the event type."""
        if not settings.stripe_webhook_secret:
            raise PaymentsNotConfiguredError("Stripe webhook secret is not configured")
        verify_stripe_signature(payload, signature_header, settings.stripe_webhook_secret)
        try:
            event = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError("Invalid webhook payload") from exc
        event_type = event.get("type", "")
        intent = (event.get("data") or {}).get("object") or {}
        if event_type == "payment_intent.succeeded":
            await cls._record_success(intent)
        elif event_type == "payment_intent.payment_failed":
            updated = await ServiceRequestService.mark_payment_failed(intent.get("id", ""))
            logger.warning("Payment intent %s failed (%s request(s) updated)", intent.get("id"), updated)
        else:
            logger.debug("Ignoring Stripe event %s", event_type)
        return event_type

    @classmethod
    async def get_payment_by_intent(cls, payment_intent_id: str) -> Optional[PaymentRead]:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM payments WHERE stripe_payment_intent_id = ?", (payment_intent_id,)
            ).fetchone()
            return _payment_from_row(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def list_payments(cls, user_id: int, service_request_id: Optional[int] = None) -> List[PaymentRead]:
        """Payments where ``user_id`` is the organizer or the professional, newest first."""
        query = "SELECT * FROM payments WHERE (organizer_id = ? OR professional_id = ?)"
        params: List[Any] = [user_id, user_id]
        if service_request_id is not None:
            query += " AND service_request_id = ?"
            params.append(service_request_id)
        query += " ORDER BY id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_payment_from_row(row) for row in rows]
        finally:
            conn.close()
