"""Invoice domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ...shared.responses import UtcDateTime

InvoiceStatus = Literal["draft", "open", "paid", "void", "uncollectible"]

DUNNING_STATES = ("none", "first_notice", "second_notice", "final_notice", "collections")


class LineItem(BaseModel):
    description: str = ""
    quantity: float = Field(1, ge=0)
    unitPrice: float = Field(0, ge=0)
    discount: Optional[float] = Field(None, ge=0)


class InvoiceDiscount(BaseModel):
    type: Literal["percent", "amount"] = "amount"
    value: float = Field(0, ge=0)


class InvoiceCreate(BaseModel):
    """Schema for creating an invoice. One of accountId or accountNumber is required."""

    title: str = Field(..., min_length=1, max_length=255)
    accountId: Optional[int] = None
    accountNumber: Optional[int] = None
    items: list[LineItem] = []
    discount: Optional[InvoiceDiscount] = None
    subtotal: Optional[float] = Field(None, ge=0)
    tax: Optional[float] = Field(None, ge=0)
    taxRate: Optional[float] = Field(None, ge=0, le=100)
    total: Optional[float] = Field(None, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    status: InvoiceStatus = "draft"
    dueDate: Optional[datetime] = None
    issuedAt: Optional[datetime] = None


class InvoiceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    accountId: Optional[int] = None
    items: Optional[list[LineItem]] = None
    discount: Optional[InvoiceDiscount] = None
    subtotal: Optional[float] = Field(None, ge=0)
    tax: Optional[float] = Field(None, ge=0)
    taxRate: Optional[float] = Field(None, ge=0, le=100)
    total: Optional[float] = Field(None, ge=0)
    status: Optional[InvoiceStatus] = None
    dueDate: Optional[datetime] = None
    issuedAt: Optional[datetime] = None


class PaymentCreate(BaseModel):
    amount: float = 0
    method: str = "card"
    paidAt: Optional[datetime] = None


class RefundCreate(BaseModel):
    amount: float = 0
    reason: str = "refund"
    refundedAt: Optional[datetime] = None


class SubscribeRequest(BaseModel):
    interval: Literal["monthly", "annual"] = "monthly"
    startAt: Optional[datetime] = None


class DunningRequest(BaseModel):
    state: str = "none"


class SendInvoiceRequest(BaseModel):
    to: Optional[EmailStr] = None


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    invoiceNumber: int = Field(validation_alias="invoice_number")
    title: str
    accountId: int = Field(validation_alias="account_id")
    items: list[dict] = []
    discount: Optional[dict] = None
    subtotal: float = 0
    discountTotal: float = Field(0, validation_alias="discount_total")
    tax: float = 0
    taxRate: Optional[float] = Field(None, validation_alias="tax_rate")
    total: float = 0
    balance: float = 0
    currency: str = "USD"
    status: str
    dueDate: Optional[UtcDateTime] = Field(None, validation_alias="due_date")
    issuedAt: Optional[UtcDateTime] = Field(None, validation_alias="issued_at")
    paidAt: Optional[UtcDateTime] = Field(None, validation_alias="paid_at")
    payments: list[dict] = []
    refunds: list[dict] = []
    subscription: Optional[dict] = None
    dunningState: str = Field("none", validation_alias="dunning_state")
    lastDunningAt: Optional[UtcDateTime] = Field(None, validation_alias="last_dunning_at")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")
