"""Read-only reports over invoices and payments."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from academy_ledger.core.exceptions import NoPaymentsFoundError
from academy_ledger.modules.invoices.models import PAYABLE_STATUSES, Invoice, InvoiceStatus
from academy_ledger.modules.payments.models import Payment
from academy_ledger.modules.students.service import StudentService
from academy_ledger.shared.utils.money import ZERO, round_money


class ReportService:
    """Student account views. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_payments_for_student(self, student_id: int) -> list[Payment]:
        """All payments of a student, newest first. Raises NoPaymentsFoundError when none."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student_id)
            .options(selectinload(Payment.allocations))
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        payments = list(result.scalars().all())
        if not payments:
            raise NoPaymentsFoundError(student_id)
        return payments

    async def outstanding_balance(self, student_id: int) -> dict:
        """
        Outstanding balance of a student.

        total_debt = sum(total - paid_total) over issued, non-cancelled invoices.
        Drafts are not billed yet and are left out entirely.
        """
        student = await StudentService(self.db).get_student(student_id)

        result = await self.db.execute(
            select(Invoice)
            .where(
                Invoice.student_id == student_id,
                Invoice.status.not_in([
                    InvoiceStatus.DRAFT.value,
                    InvoiceStatus.CANCELLED.value,
                ]),
            )
            .order_by(Invoice.due_date, Invoice.id)
        )
        invoices = list(result.scalars().all())

        total_debt = ZERO
        pending_count = 0
        paid_count = 0
        open_rows = []
        paid_rows = []
        for invoice in invoices:
            total_debt += invoice.total - invoice.paid_total
            if invoice.status == InvoiceStatus.PAID.value:
                paid_count += 1
                paid_rows.append(self._invoice_row(invoice))
            elif invoice.status in PAYABLE_STATUSES:
                pending_count += 1
                open_rows.append(self._invoice_row(invoice))

        return {
            "student_id": student.id,
            "student_name": student.full_name,
            "total_debt": round_money(total_debt),
            "pending_invoices": pending_count,
            "paid_invoices": paid_count,
            "invoices": open_rows,
            "paid": paid_rows,
        }

    @staticmethod
    def _invoice_row(invoice: Invoice) -> dict:
        return {
            "id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "billing_period": invoice.billing_period,
            "status": invoice.status,
            "due_date": invoice.due_date,
            "total": invoice.total,
            "paid_total": invoice.paid_total,
            "amount_due": invoice.amount_due,
        }
