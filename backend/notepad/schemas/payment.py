"""
Infinite Notepad Backend — Payment Schemas
============================================
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class BillingAddress(BaseModel):
    """Billing details forwarded to the payment provider as-is."""

    city: str
    country: str = Field(min_length=2, max_length=2, description="ISO 3166-1 alpha-2")
    state: str
    street: str
    zipcode: str


class CreatePaymentRequest(BaseModel):
    """Body of POST /api/payments/create."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("productId", "product_id"),
        description="Provider product id; defaults to the configured product",
    )
    quantity: int = Field(default=1, ge=1, le=100)
    billing: Optional[BillingAddress] = None


class CreatePaymentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(
        validation_alias=AliasChoices("paymentId", "payment_id"),
        serialization_alias="paymentId",
    )
    payment_link: str = Field(
        validation_alias=AliasChoices("paymentLink", "payment_link"),
        serialization_alias="paymentLink",
    )
    status: str


class WebhookAck(BaseModel):
    received: bool = True
