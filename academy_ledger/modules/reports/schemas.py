"""Schemas for student account reports."""

from datetime import date
from decimal import Decimal

from academy_ledger.shared.schemas.base import BaseSchema


class BalanceInvoiceRow(BaseSchema):
    """One invoice in a student balance."""

    id: int
    invoice_number: str | None
    billing_period: str
    status: str
    due_date: date | None
    total: Decimal
    paid_total: Decimal
    amount_due: Decimal


class StudentBalanceResponse(BaseSchema):
    """Outstanding balance of a student."""

    student_id: int
    student_name: str
    total_debt: Decimal
    pending_invoices: int  # pending, partially paid or overdue
    paid_invoices: int
    invoices: list[BalanceInvoiceRow]  # open invoices
    paid: list[BalanceInvoiceRow]
