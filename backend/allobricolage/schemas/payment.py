"""Payment schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from allobricolage.models.payment import PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    booking_id: UUID
    amount: int = Field(..., gt=0)
    payment_method: PaymentMethod
    bank_reference: Optional[str] = Field(None, max_length=255)
    payment_details: Optional[Dict[str, Any]] = None


class PaymentConfirm(BaseModel):
    transaction_id: Optional[str] = Field(None, max_length=255)


class PaymentResponse(BaseModel):
    id: UUID
    booking_id: UUID
    amount: int
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    payment_intent_id: Optional[str]
    gateway_reference: Optional[str]
    transaction_id: Optional[str]
    bank_reference: Optional[str]
    payment_details: Optional[Dict[str, Any]]
    paid_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentMethodInfo(BaseModel):
    method: PaymentMethod
    name: str
    icon: str
    enabled: bool
    fee: str


class CMIWebhook(BaseModel):
    """Status callback posted by the CMI gateway."""

    session_id: str = Field(..., alias="sessionId")
    status: str
    transaction_id: Optional[str] = Field(None, alias="transactionId")

    class Config:
        populate_by_name = True


class CashPlusWebhook(BaseModel):
    """Status callback posted by Cash Plus."""

    reference_code: str = Field(..., alias="referenceCode")
    status: str
    amount: Optional[int] = None

    class Config:
        populate_by_name = True
