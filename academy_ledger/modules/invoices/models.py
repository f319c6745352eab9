"""Invoice and InvoiceLine models."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_ledger.core.database.base import Base, BigIntPK
from academy_ledger.core.documents.number_generator import DocumentCategory
from academy_ledger.modules.students.models import TaxCondition


class InvoiceStatus(StrEnum):
    """Invoice lifecycle states."""

    DRAFT = "draft"
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# States that still accept payments
PAYABLE_STATUSES = frozenset(
    {InvoiceStatus.PENDING.value, InvoiceStatus.PARTIALLY_PAID.value, InvoiceStatus.OVERDUE.value}
)


class InvoiceCategory(StrEnum):
    """Fiscal invoice letter."""

    A = "A"
    B = "B"


# Final consumers get "B" invoices; every registered taxpayer gets "A"
INVOICE_CATEGORY_BY_TAX_CONDITION: dict[str, InvoiceCategory] = {
    TaxCondition.FINAL_CONSUMER.value: InvoiceCategory.B,
    TaxCondition.REGISTERED.value: InvoiceCategory.A,
    TaxCondition.MONOTAX.value: InvoiceCategory.A,
    TaxCondition.EXEMPT.value: InvoiceCategory.A,
}

COUNTER_BY_INVOICE_CATEGORY: dict[InvoiceCategory, DocumentCategory] = {
    InvoiceCategory.A: DocumentCategory.INVOICE_A,
    InvoiceCategory.B: DocumentCategory.INVOICE_B,
}


def invoice_category_for(tax_condition: str) -> InvoiceCategory:
    """Invoice letter implied by the payer's tax condition."""
    try:
        return INVOICE_CATEGORY_BY_TAX_CONDITION[tax_condition]
    except KeyError:
        raise ValueError(f"Unknown tax condition: {tax_condition!r}") from None


class Invoice(Base):
    """Invoice for a student and billing period."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    # Assigned when the invoice leaves draft, so drafts never consume numbers
    invoice_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True, unique=True, index=True
    )

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )

    tax_condition: Mapped[str] = mapped_column(String(30), nullable=False)
    invoice_category: Mapped[str] = mapped_column(String(1), nullable=False)  # A | B
    billing_period: Mapped[str] = mapped_column(String(7), nullable=False, index=True)  # YYYY-MM

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.PENDING.value, index=True
    )

    # Dates
    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Amounts (Decimal with 2 decimal places)
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    tax_total: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    # Derived from committed allocations; written only through the payment ledger
    paid_total: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    amount_due: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("paid_total <= total", name="ck_invoices_paid_not_above_total"),
        CheckConstraint("paid_total >= 0", name="ck_invoices_paid_not_negative"),
        CheckConstraint("total > 0", name="ck_invoices_total_positive"),
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student")
    lines: Mapped[list["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.position",
    )

    @property
    def is_editable(self) -> bool:
        """Only drafts can be edited or deleted."""
        return self.status == InvoiceStatus.DRAFT.value

    @property
    def can_receive_payment(self) -> bool:
        return self.status in PAYABLE_STATUSES

    @property
    def can_be_cancelled(self) -> bool:
        """Drafts, and issued invoices with nothing paid yet."""
        return self.status in (
            InvoiceStatus.DRAFT.value,
            InvoiceStatus.PENDING.value,
        ) and self.paid_total == Decimal("0.00")


class InvoiceLine(Base):
    """Line item in an invoice."""

    __tablename__ = "invoice_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )  # quantity * unit_price

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")


# Import at the end to avoid circular imports
from academy_ledger.modules.students.models import Student  # noqa: E402
