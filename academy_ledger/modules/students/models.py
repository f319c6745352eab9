"""Student model (billing view of the student directory)."""

from enum import StrEnum

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from academy_ledger.core.database.base import TimestampedModel


class TaxCondition(StrEnum):
    """Payer fiscal condition. Values are persisted as-is."""

    FINAL_CONSUMER = "Consumidor Final"
    REGISTERED = "Responsable Inscripto"
    MONOTAX = "Monotributista"
    EXEMPT = "Exento"


class Student(TimestampedModel):
    """Student enrolled in the school. Owner of invoices and payments."""

    __tablename__ = "students"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    document_id: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True
    )  # national id (DNI)
    tax_condition: Mapped[str] = mapped_column(
        String(30), nullable=False, default=TaxCondition.FINAL_CONSUMER.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
