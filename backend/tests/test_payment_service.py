"""
Infinite Notepad — Payment Service Unit Tests
===============================================

What we test:
    ✅ Circuit breaker state machine (CLOSED → OPEN → HALF_OPEN → CLOSED)
    ✅ Retry on 5xx / 429, no retry on 4xx
    ✅ Retries exhausted → PaymentServiceError and a recorded failure
    ✅ Webhook signature verification

The Dodo API runs behind httpx.MockTransport (see conftest.py); retry waits
are configured to zero.
"""

import json
import time
import uuid
from types import SimpleNamespace

import httpx
import pytest

from notepad.exceptions import (
    CircuitBreakerOpenError,
    PaymentServiceError,
    ValidationError,
    WebhookVerificationError,
)
from notepad.schemas.payment import BillingAddress, CreatePaymentRequest
from notepad.services.payment_service import (
    CircuitBreaker,
    DodoPaymentsClient,
    PaymentService,
    compute_signature,
    verify_webhook_signature,
)


def _user():
    return SimpleNamespace(id=uuid.uuid4(), email="alice@example.com")


class TestCircuitBreaker:
    def setup_method(self):
        self.cb = CircuitBreaker(failure_threshold=3, recovery_timeout=5)

    def test_initial_state_closed(self):
        assert self.cb.state == CircuitBreaker.CLOSED
        assert self.cb.failure_count == 0
        assert self.cb.can_execute() is True

    def test_opens_after_threshold(self):
        for _ in range(3):
            self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.OPEN

    def test_stays_closed_below_threshold(self):
        self.cb.record_failure()
        self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.CLOSED

    def test_open_rejects_calls(self):
        for _ in range(3):
            self.cb.record_failure()
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            self.cb.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 5

    def test_half_open_after_recovery(self):
        for _ in range(3):
            self.cb.record_failure()
        self.cb.last_failure_time = time.time() - 10
        assert self.cb.can_execute() is True
        assert self.cb.state == CircuitBreaker.HALF_OPEN

    def test_half_open_success_closes(self):
        self.cb.state = CircuitBreaker.HALF_OPEN
        self.cb.record_success()
        assert self.cb.state == CircuitBreaker.CLOSED
        assert self.cb.failure_count == 0

    def test_half_open_failure_reopens(self):
        self.cb.state = CircuitBreaker.HALF_OPEN
        self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.OPEN

    def test_success_resets_count(self):
        self.cb.record_failure()
        self.cb.record_failure()
        self.cb.record_success()
        assert self.cb.failure_count == 0


class TestDodoClient:
    @pytest.mark.asyncio
    async def test_request_shape(self, payment_service, dodo_requests):
        await payment_service.client.create_payment({"payment_link": True})

        request = dodo_requests[0]
        assert request.method == "POST"
        assert request.url.path == "/payments"
        assert request.headers["Authorization"] == "Bearer test-dodo-key"
        assert json.loads(request.content) == {"payment_link": True}

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self, payment_service, dodo_handler, dodo_requests):
        def flaky(request):
            if len(dodo_requests) < 3:
                return httpx.Response(503, json={"message": "unavailable"})
            return httpx.Response(200, json={"payment_id": "pay_ok", "payment_link": "https://pay/ok"})

        dodo_handler["handle"] = flaky
        data = await payment_service.client.create_payment({})

        assert data["payment_id"] == "pay_ok"
        assert len(dodo_requests) == 3

    @pytest.mark.asyncio
    async def test_rate_limited_is_retried(self, payment_service, dodo_handler, dodo_requests):
        def limited_once(request):
            if len(dodo_requests) == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"payment_id": "p", "payment_link": "l"})

        dodo_handler["handle"] = limited_once
        await payment_service.client.create_payment({})
        assert len(dodo_requests) == 2

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self, payment_service, dodo_handler, dodo_requests):
        dodo_handler["handle"] = lambda request: httpx.Response(422, json={"message": "bad product"})

        with pytest.raises(PaymentServiceError, match="rejected"):
            await payment_service.client.create_payment({})
        assert len(dodo_requests) == 1


class TestCreatePayment:
    @pytest.mark.asyncio
    async def test_creates_pending_record(self, payment_service, db_session, dodo_requests):
        from notepad.repositories.payment import PaymentRepository
        from notepad.repositories.user import UserRepository

        user = await UserRepository(db_session).create("alice@example.com", "x")
        request = CreatePaymentRequest(
            productId="prod_pro",
            billing=BillingAddress(city="Paris", country="FR", state="IDF", street="1 Rue", zipcode="75001"),
        )

        response = await payment_service.create_payment(db_session, user, request)

        assert response.status == "pending"
        sent = json.loads(dodo_requests[0].content)
        assert sent["product_cart"] == [{"product_id": "prod_pro", "quantity": 1}]
        assert sent["customer"]["email"] == "alice@example.com"
        assert sent["metadata"] == {"user_id": str(user.id)}
        assert sent["billing"]["country"] == "FR"

        record = await PaymentRepository(db_session).get_by_payment_id(response.payment_id)
        assert record.amount == 1500
        assert record.currency == "USD"

    @pytest.mark.asyncio
    async def test_exhausted_retries_record_circuit_failure(self, payment_service, dodo_handler, dodo_requests):
        dodo_handler["handle"] = lambda request: httpx.Response(500)

        with pytest.raises(PaymentServiceError, match="multiple attempts"):
            await payment_service.create_payment(None, _user(), CreatePaymentRequest())

        assert len(dodo_requests) == 3
        assert payment_service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_rejection_does_not_trip_circuit(self, payment_service, dodo_handler):
        dodo_handler["handle"] = lambda request: httpx.Response(400)

        with pytest.raises(PaymentServiceError):
            await payment_service.create_payment(None, _user(), CreatePaymentRequest())
        assert payment_service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self, payment_service, dodo_requests):
        payment_service.circuit_breaker.state = CircuitBreaker.OPEN
        payment_service.circuit_breaker.last_failure_time = time.time()

        with pytest.raises(CircuitBreakerOpenError):
            await payment_service.create_payment(None, _user(), CreatePaymentRequest())
        assert dodo_requests == []

    @pytest.mark.asyncio
    async def test_missing_product(self, payment_service, monkeypatch):
        from notepad.config import settings

        monkeypatch.setattr(settings, "dodo_product_id", "")
        with pytest.raises(ValidationError):
            await payment_service.create_payment(None, _user(), CreatePaymentRequest())

    @pytest.mark.asyncio
    async def test_unconfigured_api_key(self):
        service = PaymentService(
            client=DodoPaymentsClient(api_key="", base_url="https://test.dodopayments.com"),
            webhook_secret="s",
        )
        try:
            with pytest.raises(PaymentServiceError, match="not configured"):
                await service.create_payment(None, _user(), CreatePaymentRequest())
        finally:
            await service.aclose()


class TestWebhookSignature:
    def test_valid_signature(self):
        body = b'{"type":"payment.succeeded"}'
        verify_webhook_signature("secret", body, compute_signature("secret", body))

    def test_signature_is_case_insensitive_hex(self):
        body = b"{}"
        verify_webhook_signature("secret", body, compute_signature("secret", body).upper())

    @pytest.mark.parametrize("signature", [None, "", "deadbeef"])
    def test_invalid_signature(self, signature):
        with pytest.raises(WebhookVerificationError):
            verify_webhook_signature("secret", b"{}", signature)

    def test_modified_body_rejected(self):
        signature = compute_signature("secret", b'{"amount":1}')
        with pytest.raises(WebhookVerificationError):
            verify_webhook_signature("secret", b'{"amount":9}', signature)

    def test_no_secret_configured(self):
        with pytest.raises(WebhookVerificationError, match="not configured"):
            verify_webhook_signature("", b"{}", "anything")
