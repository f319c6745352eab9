"""Payment (receipt) and PaymentAllocation models."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
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


class PaymentMethod(StrEnum):
    """Payment method options."""

    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    DIGITAL_WALLET = "digital_wallet"
    OTHER = "other"


class PaymentStatus(StrEnum):
    """Payment status options."""

    COMPLETED = "completed"
    VOID = "void"


class Payment(Base):
    """
    Payment record - one receipt covering one or more invoices of a student.

    The amount is the sum of its allocations. Apart from voiding, a payment is
    never modified after it is written.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    receipt_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.COMPLETED.value, index=True
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student")
    allocations: Mapped[list["PaymentAllocation"]] = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentAllocation.position",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    @property
    def is_void(self) -> bool:
        return self.status == PaymentStatus.VOID.value


class PaymentAllocation(Base):
    """Portion of a payment applied to one invoice."""

    __tablename__ = "payment_allocations"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    payment_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("invoices.id"), nullable=False, index=True
    )
    # Order in which the allocations were given
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_allocations_amount_positive"),
    )

    # Relationships
    payment: Mapped["Payment"] = relationship("Payment", back_populates="allocations")
    invoice: Mapped["Invoice"] = relationship("Invoice")


# Import at the end to avoid circular imports
from academy_ledger.modules.invoices.models import Invoice  # noqa: E402
from academy_ledger.modules.students.models import Student  # noqa: E402
