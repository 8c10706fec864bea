"""
Infinite Notepad Backend — Payment Route Handlers
===================================================

POST /api/payments/create   (bearer)  hosted payment link for the caller
POST /api/payments/webhook  (signed)  provider status callbacks

The webhook handler reads the raw body: the signature covers the exact
bytes sent, so the body must not be parsed and re-serialized first.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.database import get_db_session
from notepad.dependencies import get_current_user, get_payment_service
from notepad.models.user import User
from notepad.schemas.common import ErrorResponse
from notepad.schemas.payment import CreatePaymentRequest, CreatePaymentResponse, WebhookAck
from notepad.services.payment_service import SIGNATURE_HEADERS, PaymentService

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post(
    "/create",
    response_model=CreatePaymentResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        503: {"description": "Payment provider unavailable", "model": ErrorResponse},
    },
    summary="Create a hosted payment link",
)
async def create_payment(
    body: CreatePaymentRequest = CreatePaymentRequest(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    payments: PaymentService = Depends(get_payment_service),
) -> CreatePaymentResponse:
    return await payments.create_payment(db, user, body)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={401: {"description": "Missing or invalid signature", "model": ErrorResponse}},
    summary="Payment provider webhook",
)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    payments: PaymentService = Depends(get_payment_service),
) -> WebhookAck:
    payload = await request.body()
    signature = next(
        (request.headers[name] for name in SIGNATURE_HEADERS if name in request.headers),
        None,
    )
    await payments.handle_webhook(db, payload, signature)
    return WebhookAck()
