"""Service for Invoices module."""

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from academy_ledger.core.audit.service import AuditAction, AuditService
from academy_ledger.core.config import settings
from academy_ledger.core.documents.number_generator import DocumentNumberGenerator
from academy_ledger.core.exceptions import (
    DocumentNumberInUseError,
    InvoiceAlreadySettledError,
    InvoiceNotEditableError,
    InvoiceNotFoundError,
    InvoiceNotIssuedError,
    PaymentExceedsBalanceError,
    ValidationError,
)
from academy_ledger.shared.utils.money import ZERO, round_money, sum_money
from academy_ledger.modules.invoices.models import (
    COUNTER_BY_INVOICE_CATEGORY,
    Invoice,
    InvoiceCategory,
    InvoiceLine,
    InvoiceStatus,
    invoice_category_for,
)
from academy_ledger.modules.invoices.schemas import (
    InvoiceCreate,
    InvoiceFilters,
    InvoiceLineCreate,
    InvoiceUpdate,
)
from academy_ledger.modules.students.service import StudentService

logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Owner of invoice lifecycle state.

    Payment-derived fields (paid_total, amount_due and the paid/partially paid
    transitions) change only through record_payment / reverse_payment, which the
    payment ledger calls inside its own transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.students = StudentService(db)

    # --- Helper Methods ---

    def _build_lines(self, lines_data: list[InvoiceLineCreate]) -> list[InvoiceLine]:
        """Validate line input and build InvoiceLine rows."""
        if not lines_data:
            raise ValidationError("Invoice must have at least one line", field="lines")

        lines = []
        for position, line_data in enumerate(lines_data):
            if line_data.quantity <= 0:
                raise ValidationError(
                    f"Line {position + 1}: quantity must be greater than zero",
                    field=f"lines.{position}.quantity",
                )
            unit_price = round_money(line_data.unit_price)
            if unit_price <= ZERO:
                raise ValidationError(
                    f"Line {position + 1}: unit price must be greater than zero",
                    field=f"lines.{position}.unit_price",
                )
            lines.append(
                InvoiceLine(
                    position=position,
                    description=line_data.description,
                    quantity=line_data.quantity,
                    unit_price=unit_price,
                    line_total=round_money(unit_price * line_data.quantity),
                )
            )
        return lines

    def _recalculate_invoice(self, invoice: Invoice) -> None:
        """Recalculate invoice totals from lines (draft or new invoices only)."""
        invoice.subtotal = sum_money(line.line_total for line in invoice.lines)
        invoice.tax_total = round_money(invoice.subtotal * settings.invoice_tax_rate)
        invoice.total = round_money(invoice.subtotal + invoice.tax_total)
        invoice.paid_total = invoice.paid_total or ZERO
        invoice.amount_due = round_money(invoice.total - invoice.paid_total)

    async def _assign_number(self, invoice: Invoice) -> str:
        """
        Take the next number from the counter implied by the invoice letter.

        Rolls back and raises DocumentNumberInUseError when the counter hands
        out a number another invoice already carries (counter reset below the
        stored documents).
        """
        counter = COUNTER_BY_INVOICE_CATEGORY[InvoiceCategory(invoice.invoice_category)]
        invoice_number = await DocumentNumberGenerator(self.db).next_number(counter)

        existing = await self.db.execute(
            select(Invoice.id).where(Invoice.invoice_number == invoice_number)
        )
        if existing.scalar_one_or_none() is not None:
            await self.db.rollback()
            logger.error("Counter %s produced %s, which is already in use", counter.value, invoice_number)
            raise DocumentNumberInUseError(invoice_number, counter.value)

        invoice.invoice_number = invoice_number
        return invoice_number

    async def _get_invoice_for_update(self, invoice_id: int) -> Invoice:
        """Load and row-lock an invoice, refreshing any copy already in the session."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.lines))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def _default_due_date(self, issue_date: date) -> date:
        return issue_date + timedelta(days=settings.invoice_due_days)

    # --- Invoice CRUD ---

    async def create_invoice(
        self, data: InvoiceCreate, created_by_id: int | None = None
    ) -> Invoice:
        """
        Create an invoice for a student.

        The invoice is immediately billable (pending, numbered) unless as_draft
        is set, in which case it stays editable and unnumbered until issued.
        """
        student = await self.students.get_student(data.student_id)
        lines = self._build_lines(data.lines)
        try:
            category = invoice_category_for(student.tax_condition)
        except ValueError:
            raise ValidationError(
                f"Student {student.id} has unknown tax condition '{student.tax_condition}'",
                field="tax_condition",
            ) from None

        invoice = Invoice(
            student_id=student.id,
            tax_condition=student.tax_condition,
            invoice_category=category.value,
            billing_period=data.billing_period,
            status=InvoiceStatus.DRAFT.value if data.as_draft else InvoiceStatus.PENDING.value,
            due_date=data.due_date,
            paid_total=ZERO,
            notes=data.notes,
        )
        invoice.lines = lines
        self._recalculate_invoice(invoice)

        if not data.as_draft:
            await self._assign_number(invoice)
            invoice.issue_date = date.today()
            invoice.due_date = data.due_date or self._default_due_date(invoice.issue_date)

        self.db.add(invoice)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.INVOICE_CREATE,
            entity_type="Invoice",
            entity_id=invoice.id,
            entity_identifier=invoice.invoice_number,
            user_id=created_by_id,
            new_values={
                "student_id": student.id,
                "status": invoice.status,
                "billing_period": invoice.billing_period,
                "total": str(invoice.total),
            },
        )

        await self.db.commit()
        logger.info(
            "Invoice %s created for student %s (total %s, status %s)",
            invoice.invoice_number or f"draft#{invoice.id}",
            student.id,
            invoice.total,
            invoice.status,
        )
        return await self.get_invoice_by_id(invoice.id)

    async def update_draft(
        self, invoice_id: int, data: InvoiceUpdate, updated_by_id: int | None = None
    ) -> Invoice:
        """Edit a draft invoice. Lines, when provided, replace the existing ones."""
        invoice = await self._get_invoice_for_update(invoice_id)
        if not invoice.is_editable:
            raise InvoiceNotEditableError(invoice_id, invoice.status, action="edit")

        old_values: dict[str, str | None] = {}
        new_values: dict[str, str | None] = {}

        if data.billing_period is not None:
            old_values["billing_period"] = invoice.billing_period
            invoice.billing_period = data.billing_period
            new_values["billing_period"] = data.billing_period

        if data.due_date is not None:
            old_values["due_date"] = str(invoice.due_date) if invoice.due_date else None
            invoice.due_date = data.due_date
            new_values["due_date"] = str(data.due_date)

        if data.notes is not None:
            invoice.notes = data.notes

        if data.lines is not None:
            old_values["total"] = str(invoice.total)
            invoice.lines = self._build_lines(data.lines)
            self._recalculate_invoice(invoice)
            new_values["total"] = str(invoice.total)

        await self.db.flush()
        await self.audit.log(
            action=AuditAction.INVOICE_UPDATE,
            entity_type="Invoice",
            entity_id=invoice_id,
            user_id=updated_by_id,
            old_values=old_values,
            new_values=new_values,
        )

        await self.db.commit()
        return await self.get_invoice_by_id(invoice_id)

    async def delete_draft(self, invoice_id: int, deleted_by_id: int | None = None) -> None:
        """Delete a draft invoice. Issued invoices are cancelled, never deleted."""
        invoice = await self._get_invoice_for_update(invoice_id)
        if not invoice.is_editable:
            raise InvoiceNotEditableError(invoice_id, invoice.status, action="delete")

        await self.audit.log(
            action=AuditAction.INVOICE_DELETE,
            entity_type="Invoice",
            entity_id=invoice_id,
            user_id=deleted_by_id,
            old_values={
                "student_id": invoice.student_id,
                "billing_period": invoice.billing_period,
                "total": str(invoice.total),
            },
        )
        await self.db.delete(invoice)
        await self.db.commit()

    async def issue_invoice(
        self, invoice_id: int, issued_by_id: int | None = None, due_date: date | None = None
    ) -> Invoice:
        """Authorize a draft: assign its number and make it billable."""
        invoice = await self._get_invoice_for_update(invoice_id)

        if invoice.status != InvoiceStatus.DRAFT.value:
            raise InvoiceNotEditableError(invoice_id, invoice.status, action="issue")

        if not invoice.lines or invoice.total <= ZERO:
            raise ValidationError("Cannot issue an invoice with no billable lines", field="lines")

        invoice_number = await self._assign_number(invoice)
        invoice.status = InvoiceStatus.PENDING.value
        invoice.issue_date = date.today()
        invoice.due_date = due_date or invoice.due_date or self._default_due_date(invoice.issue_date)

        await self.audit.log(
            action=AuditAction.INVOICE_ISSUE,
            entity_type="Invoice",
            entity_id=invoice_id,
            entity_identifier=invoice_number,
            user_id=issued_by_id,
            new_values={"status": InvoiceStatus.PENDING.value, "invoice_number": invoice_number},
        )

        await self.db.commit()
        return await self.get_invoice_by_id(invoice_id)

    async def cancel_invoice(
        self, invoice_id: int, cancelled_by_id: int | None = None, reason: str | None = None
    ) -> Invoice:
        """Cancel an invoice (only if no payments received)."""
        invoice = await self._get_invoice_for_update(invoice_id)

        if not invoice.can_be_cancelled:
            raise InvoiceNotEditableError(invoice_id, invoice.status, action="cancel")

        old_status = invoice.status
        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.amount_due = ZERO

        await self.audit.log(
            action=AuditAction.INVOICE_CANCEL,
            entity_type="Invoice",
            entity_id=invoice_id,
            entity_identifier=invoice.invoice_number,
            user_id=cancelled_by_id,
            old_values={"status": old_status},
            new_values={"status": InvoiceStatus.CANCELLED.value},
            comment=reason,
        )

        await self.db.commit()
        return await self.get_invoice_by_id(invoice_id)

    async def mark_overdue(self, as_of: date | None = None) -> int:
        """Move unpaid invoices whose due date has passed to overdue."""
        as_of = as_of or date.today()
        result = await self.db.execute(
            select(Invoice)
            .where(
                Invoice.status.in_([
                    InvoiceStatus.PENDING.value,
                    InvoiceStatus.PARTIALLY_PAID.value,
                ]),
                Invoice.due_date.is_not(None),
                Invoice.due_date < as_of,
            )
            .order_by(Invoice.id)
            .with_for_update()
        )
        invoices = list(result.scalars().all())

        for invoice in invoices:
            old_status = invoice.status
            invoice.status = InvoiceStatus.OVERDUE.value
            await self.audit.log(
                action=AuditAction.INVOICE_OVERDUE,
                entity_type="Invoice",
                entity_id=invoice.id,
                entity_identifier=invoice.invoice_number,
                old_values={"status": old_status},
                new_values={"status": InvoiceStatus.OVERDUE.value},
            )

        await self.db.commit()
        if invoices:
            logger.info("Marked %d invoice(s) overdue as of %s", len(invoices), as_of)
        return len(invoices)

    async def get_invoice_by_id(self, invoice_id: int) -> Invoice:
        """Get invoice by ID with lines loaded."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.lines))
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    async def get_invoice_by_number(self, invoice_number: str) -> Invoice:
        """Get invoice by number."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.invoice_number == invoice_number)
            .options(selectinload(Invoice.lines))
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise InvoiceNotFoundError(invoice_number)
        return invoice

    async def list_invoices(
        self, filters: InvoiceFilters
    ) -> tuple[list[Invoice], int]:
        """List invoices with filters."""
        query = select(Invoice).order_by(Invoice.created_at.desc(), Invoice.id.desc())

        if filters.student_id is not None:
            query = query.where(Invoice.student_id == filters.student_id)
        if filters.status is not None:
            query = query.where(Invoice.status == filters.status.value)
        if filters.billing_period is not None:
            query = query.where(Invoice.billing_period == filters.billing_period)
        if filters.search:
            query = query.where(Invoice.invoice_number.ilike(f"%{filters.search}%"))

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        # Apply pagination
        offset = (filters.page - 1) * filters.limit
        query = query.offset(offset).limit(filters.limit)

        result = await self.db.execute(query)
        invoices = list(result.scalars().all())

        return invoices, total

    # --- Payment Recording (called by the payment ledger only) ---

    def check_payment(self, invoice: Invoice, amount: Decimal, prior_paid: Decimal) -> Decimal:
        """
        Verify invoice can take amount on top of prior_paid.

        Returns the new paid total. Does not mutate the invoice.
        """
        if invoice.status == InvoiceStatus.DRAFT.value:
            raise InvoiceNotIssuedError(invoice.id)
        if not invoice.can_receive_payment:
            raise InvoiceAlreadySettledError(invoice.id, invoice.invoice_number, invoice.status)

        new_paid = round_money(prior_paid + amount)
        if new_paid > invoice.total:
            raise PaymentExceedsBalanceError(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                total=invoice.total,
                already_paid=round_money(prior_paid),
                attempted=round_money(amount),
            )
        return new_paid

    def record_payment(self, invoice: Invoice, amount: Decimal, prior_paid: Decimal) -> Invoice:
        """Apply an allocation: paid when fully covered, partially paid otherwise."""
        new_paid = self.check_payment(invoice, amount, prior_paid)

        invoice.paid_total = new_paid
        invoice.amount_due = round_money(invoice.total - new_paid)
        if new_paid == invoice.total:
            invoice.status = InvoiceStatus.PAID.value
        else:
            invoice.status = InvoiceStatus.PARTIALLY_PAID.value
        return invoice

    def reverse_payment(
        self,
        invoice: Invoice,
        amount: Decimal,
        prior_paid: Decimal,
        as_of: date | None = None,
    ) -> Invoice:
        """Undo an allocation when its payment is voided."""
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise InvoiceAlreadySettledError(invoice.id, invoice.invoice_number, invoice.status)

        new_paid = round_money(prior_paid - amount)
        if new_paid < ZERO:
            raise ValidationError(
                f"Reversal of {amount} exceeds amount paid {prior_paid} "
                f"on invoice {invoice.invoice_number or invoice.id}"
            )

        as_of = as_of or date.today()
        invoice.paid_total = new_paid
        invoice.amount_due = round_money(invoice.total - new_paid)
        if invoice.due_date is not None and invoice.due_date < as_of:
            invoice.status = InvoiceStatus.OVERDUE.value
        elif new_paid > ZERO:
            invoice.status = InvoiceStatus.PARTIALLY_PAID.value
        else:
            invoice.status = InvoiceStatus.PENDING.value
        return invoice
