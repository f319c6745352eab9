"""Pydantic schemas for Payments module."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator

from academy_ledger.shared.schemas.base import BaseSchema
from academy_ledger.modules.payments.models import PaymentMethod, PaymentStatus


# --- Payment Schemas ---


class AllocationIn(BaseSchema):
    """Amount of a payment applied to one invoice. Amount is checked by the ledger."""

    invoice_id: int
    amount: Decimal


class PaymentCreate(BaseSchema):
    """
    Schema for registering a payment.

    Accepts either the general form (allocations list) or the single-invoice
    shorthand (invoice_id + amount_applied), which is normalized into a
    one-element allocations list.
    """

    student_id: int
    payment_method: PaymentMethod
    payment_date: datetime | None = None
    notes: str | None = Field(None, max_length=500)
    allocations: list[AllocationIn] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_single_invoice(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "invoice_id" not in data:
            return data
        if data.get("allocations"):
            raise ValueError("Use either invoice_id/amount_applied or allocations, not both")
        data = dict(data)
        invoice_id = data.pop("invoice_id")
        amount = data.pop("amount_applied", None)
        if amount is None:
            raise ValueError("amount_applied is required together with invoice_id")
        data["allocations"] = [{"invoice_id": invoice_id, "amount": amount}]
        return data


class PaymentVoidRequest(BaseSchema):
    reason: str = Field(..., min_length=1, max_length=500)


class AllocationResponse(BaseSchema):
    """Schema for allocation response."""

    id: int
    invoice_id: int
    amount: Decimal
    position: int


class PaymentResponse(BaseSchema):
    """Schema for payment response."""

    id: int
    receipt_number: str
    student_id: int
    amount: Decimal
    payment_method: str
    payment_date: datetime
    status: str
    notes: str | None
    void_reason: str | None = None
    voided_at: datetime | None = None
    allocations: list[AllocationResponse] = Field(default_factory=list)
    created_at: datetime


class InvoiceBalance(BaseSchema):
    """Invoice state right after a payment or void was applied."""

    id: int
    invoice_number: str | None
    status: str
    total: Decimal
    paid_total: Decimal
    amount_due: Decimal


class PaymentResult(BaseSchema):
    """Outcome of register_payment / void_payment."""

    payment: PaymentResponse
    invoices: list[InvoiceBalance]


class PaymentFilters(BaseSchema):
    """Filters for listing payments."""

    student_id: int | None = None
    status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)
