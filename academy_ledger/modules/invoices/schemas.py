"""Schemas for Invoices module."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from academy_ledger.modules.invoices.models import InvoiceStatus

BILLING_PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# --- Invoice Line Schemas ---


class InvoiceLineCreate(BaseModel):
    """Schema for an invoice line. Quantity and price are checked by the service."""

    description: str = Field(..., min_length=1, max_length=255)
    quantity: int
    unit_price: Decimal


class InvoiceLineResponse(BaseModel):
    id: int
    position: int
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


# --- Invoice Schemas ---


class InvoiceCreate(BaseModel):
    """Schema for creating an invoice."""

    student_id: int
    billing_period: str = Field(..., pattern=BILLING_PERIOD_PATTERN)
    due_date: date | None = None
    notes: str | None = Field(None, max_length=500)
    lines: list[InvoiceLineCreate] = Field(default_factory=list)
    # Start in draft (editable, unnumbered) instead of pending
    as_draft: bool = False


class InvoiceUpdate(BaseModel):
    """Schema for updating an invoice (draft only)."""

    billing_period: str | None = Field(None, pattern=BILLING_PERIOD_PATTERN)
    due_date: date | None = None
    notes: str | None = Field(None, max_length=500)
    # When given, replaces all lines
    lines: list[InvoiceLineCreate] | None = None


class InvoiceCancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class MarkOverdueRequest(BaseModel):
    as_of: date | None = None


class MarkOverdueResult(BaseModel):
    invoices_marked: int
    as_of: date


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""

    id: int
    invoice_number: str | None
    student_id: int
    tax_condition: str
    invoice_category: str
    billing_period: str
    status: str
    issue_date: date | None
    due_date: date | None
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal
    paid_total: Decimal
    amount_due: Decimal
    notes: str | None
    lines: list[InvoiceLineResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class InvoiceSummary(BaseModel):
    """Brief invoice summary for lists."""

    id: int
    invoice_number: str | None
    student_id: int
    billing_period: str
    status: str
    total: Decimal
    paid_total: Decimal
    amount_due: Decimal
    issue_date: date | None
    due_date: date | None

    model_config = {"from_attributes": True}


# --- Filters ---


class InvoiceFilters(BaseModel):
    """Filters for listing invoices."""

    student_id: int | None = None
    status: InvoiceStatus | None = None
    billing_period: str | None = None
    search: str | None = None  # Search by invoice_number
    page: int = Field(1, ge=1)
    limit: int = Field(100, ge=1, le=500)


class InvoiceIssueRequest(BaseModel):
    """Optional due date override when issuing a draft."""

    due_date: date | None = None
