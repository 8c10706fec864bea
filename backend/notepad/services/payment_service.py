"""
Infinite Notepad Backend — Payment Service (Dodo Payments)
============================================================

What:  Creates hosted payment links through the Dodo Payments HTTP API and
       applies the provider's signed webhooks to local payment records.
How:   httpx.AsyncClient for the API; every outbound call is wrapped in
       tenacity retries (exponential backoff with jitter) behind a circuit
       breaker.
Who:   Instantiated once per app (app.state.payments); called by the
       payment route handlers.

Resilience Strategy:
    1. Tenacity retry for transport errors and 429/5xx responses
    2. Circuit breaker so a provider outage fails fast instead of stacking
       retries on every request
    3. 4xx responses are the caller's fault: not retried and not counted
       against the circuit

Webhook verification:
    header `dodo-signature` (or `x-dodo-signature`) must equal
    hex(HMAC-SHA256(webhook_secret, raw_body)); compared in constant time.
"""

import hashlib
import hmac
import json
import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from notepad.config import settings
from notepad.database import utc_now
from notepad.exceptions import (
    CircuitBreakerOpenError,
    PaymentServiceError,
    ValidationError,
    WebhookVerificationError,
)
from notepad.models.payment import PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_PENDING
from notepad.models.user import User
from notepad.repositories.payment import PaymentRepository
from notepad.schemas.payment import CreatePaymentRequest, CreatePaymentResponse

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("dodo-signature", "x-dodo-signature")

WEBHOOK_STATUS = {
    "payment.succeeded": PAYMENT_COMPLETED,
    "payment.failed": PAYMENT_FAILED,
}


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding the payment provider.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not shared across processes; each uvicorn worker has its own.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
                self.state = self.HALF_OPEN
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Dodo Payments API client
# ══════════════════════════════════════════════════════════════════════════

class TransientProviderError(Exception):
    """A provider response worth retrying (429 or 5xx)."""

    def __init__(self, status_code: int):
        super().__init__(f"Payment provider returned HTTP {status_code}")
        self.status_code = status_code


class DodoPaymentsClient:
    """
    Thin async client for the Dodo Payments REST API.

    Args:
        api_key: Bearer key for the provider
        base_url: Defaults to the configured environment's URL
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.dodo_api_key
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.dodo_base_url,
            timeout=timeout or settings.payment_timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, TransientProviderError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=settings.retry_jitter,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def create_payment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST /payments.

        Raises:
            PaymentServiceError: the provider rejected the request (4xx)
            TransientProviderError / httpx.TransportError: retried by tenacity
        """
        start_time = time.time()
        response = await self._client.post("/payments", json=payload)
        duration_ms = (time.time() - start_time) * 1000

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning("Payment API returned %d after %.0fms", response.status_code, duration_ms)
            raise TransientProviderError(response.status_code)
        if response.status_code >= 400:
            logger.error("Payment API rejected request: %d %s", response.status_code, response.text[:500])
            raise PaymentServiceError(
                message="The payment provider rejected the request.",
                context={"status_code": response.status_code},
            )

        logger.info("Payment API responded in %.0fms", duration_ms)
        return response.json()


# ══════════════════════════════════════════════════════════════════════════
# Payment Service
# ══════════════════════════════════════════════════════════════════════════

def compute_signature(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(secret: str, payload: bytes, signature: Optional[str]) -> None:
    """
    Raises:
        WebhookVerificationError: no secret configured, no signature, or mismatch
    """
    if not secret:
        logger.error("Webhook received but DODO_WEBHOOK_SECRET is not configured")
        raise WebhookVerificationError("Webhook verification is not configured")
    if not signature:
        raise WebhookVerificationError("Missing webhook signature")
    if not hmac.compare_digest(compute_signature(secret, payload), signature.strip().lower()):
        raise WebhookVerificationError()


class PaymentService:
    """
    Payment link creation and webhook handling.

    Error Handling Chain:
        API call fails → tenacity retries (N attempts with backoff)
        → All retries fail → circuit breaker failure recorded → 503
        → Threshold reached → later calls rejected instantly (503)
        → Recovery timeout → one test call (HALF_OPEN)
    """

    def __init__(
        self,
        client: Optional[DodoPaymentsClient] = None,
        webhook_secret: Optional[str] = None,
    ):
        self.client = client or DodoPaymentsClient()
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.dodo_webhook_secret
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "PaymentService initialized (env=%s, circuit_breaker threshold=%d, recovery=%ds)",
            settings.dodo_environment,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    def _build_payload(self, user: User, request: CreatePaymentRequest, product_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "payment_link": True,
            "customer": {"email": user.email, "name": user.email.split("@", 1)[0]},
            "product_cart": [{"product_id": product_id, "quantity": request.quantity}],
            "return_url": settings.dodo_return_url,
            "metadata": {"user_id": str(user.id)},
        }
        if request.billing is not None:
            payload["billing"] = request.billing.model_dump()
        return payload

    async def create_payment(
        self, db: AsyncSession, user: User, request: CreatePaymentRequest
    ) -> CreatePaymentResponse:
        """
        Create a hosted payment link and a pending local record.

        Raises:
            ValidationError: no product id given and none configured
            CircuitBreakerOpenError: too many recent provider failures
            PaymentServiceError: provider failed or rejected the request
        """
        product_id = request.product_id or settings.dodo_product_id
        if not product_id:
            raise ValidationError(message="A product id is required", field="productId")
        if not self.client.api_key:
            raise PaymentServiceError(message="Payments are not configured on this server.")

        call_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()
        logger.info("[%s] Creating payment link for user %s (product=%s)", call_id, user.id, product_id)

        try:
            data = await self.client.create_payment(self._build_payload(user, request, product_id))
        except PaymentServiceError:
            raise
        except RetryError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] All payment API retries exhausted: %s",
                call_id,
                str(e.last_attempt.exception()) if e.last_attempt else "Unknown error",
            )
            raise PaymentServiceError(
                message="Payment service failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"call_id": call_id, "attempts": settings.retry_max_attempts},
            )
        except (httpx.HTTPError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Unexpected payment API error: %s", call_id, str(e), exc_info=True)
            raise PaymentServiceError(
                message="An unexpected error occurred while creating the payment.",
                context={"call_id": call_id, "error_type": type(e).__name__},
            )
        self.circuit_breaker.record_success()

        payment_id = data.get("payment_id")
        payment_link = data.get("payment_link")
        if not payment_id or not payment_link:
            logger.error("[%s] Payment API response missing id or link: %s", call_id, data)
            raise PaymentServiceError(message="The payment provider returned an incomplete response.")

        record = await PaymentRepository(db).create(
            user_id=user.id,
            payment_id=payment_id,
            product_id=product_id,
            amount=int(data.get("total_amount") or 0),
            currency=data.get("currency") or settings.payment_currency,
            status=PAYMENT_PENDING,
            payment_link=payment_link,
        )
        logger.info("[%s] Payment %s created (pending)", call_id, record.payment_id)
        return CreatePaymentResponse(
            payment_id=record.payment_id,
            payment_link=payment_link,
            status=record.status,
        )

    async def handle_webhook(self, db: AsyncSession, payload: bytes, signature: Optional[str]) -> None:
        """
        Verify and apply a provider webhook.

        Unknown event types and unknown payment ids are acknowledged and
        logged; only a bad signature or malformed body is an error.
        """
        verify_webhook_signature(self.webhook_secret, payload, signature)
        try:
            event = json.loads(payload)
        except ValueError:
            raise ValidationError(message="Webhook body is not valid JSON")
        if not isinstance(event, dict):
            raise ValidationError(message="Webhook body must be a JSON object")

        event_type = event.get("type")
        data = event.get("data") or {}
        payment_id = data.get("payment_id") if isinstance(data, dict) else None

        new_status = WEBHOOK_STATUS.get(event_type)
        if new_status is None:
            logger.info("Ignoring webhook event type %r", event_type)
            return
        if not payment_id:
            logger.warning("Webhook %s without payment_id", event_type)
            return

        record = await PaymentRepository(db).get_by_payment_id(payment_id)
        if record is None:
            logger.warning("Webhook %s for unknown payment %s", event_type, payment_id)
            return

        record.status = new_status
        record.updated_at = utc_now()
        await db.flush()
        logger.info("Payment %s marked %s", payment_id, new_status)
