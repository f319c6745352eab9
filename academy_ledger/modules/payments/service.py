"""Payment ledger: the only writer of payments and of invoice paid amounts."""

import logging
from collections.abc import Sequence
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from academy_ledger.core.audit.service import AuditAction, AuditService
from academy_ledger.core.documents.number_generator import (
    DocumentCategory,
    DocumentNumberGenerator,
)
from academy_ledger.core.exceptions import (
    AppException,
    ConcurrencyConflictError,
    DocumentNumberInUseError,
    InvalidAmountError,
    InvoiceNotFoundError,
    NotFoundError,
    OwnershipMismatchError,
    ValidationError,
)
from academy_ledger.shared.utils.money import ZERO, round_money, sum_money
from academy_ledger.modules.invoices.models import Invoice
from academy_ledger.modules.invoices.service import InvoiceService
from academy_ledger.modules.payments.models import (
    Payment,
    PaymentAllocation,
    PaymentMethod,
    PaymentStatus,
)
from academy_ledger.modules.payments.schemas import (
    AllocationIn,
    InvoiceBalance,
    PaymentFilters,
    PaymentResponse,
    PaymentResult,
)

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Registers and voids payments.

    A registration is one transaction: receipt number, payment row, allocations
    and every invoice update commit together or not at all. All validation runs
    before the first write.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.invoices = InvoiceService(db)

    # --- Registration ---

    async def register_payment(
        self,
        student_id: int,
        allocations: Sequence[AllocationIn],
        payment_method: PaymentMethod | str,
        payment_date: datetime | None = None,
        notes: str | None = None,
        user_id: int | None = None,
    ) -> PaymentResult:
        """
        Apply one payment to one or more invoices of a student.

        Raises InvalidAmountError, InvoiceNotFoundError, OwnershipMismatchError,
        InvoiceAlreadySettledError, InvoiceNotIssuedError or
        PaymentExceedsBalanceError without changing anything.
        """
        requested = self._normalize_allocations(allocations)
        method = PaymentMethod(payment_method)

        try:
            invoice_ids = [invoice_id for invoice_id, _ in requested]
            invoices = await self._lock_invoices(invoice_ids)

            for invoice_id, _ in requested:
                invoice = invoices[invoice_id]
                if invoice.student_id != student_id:
                    raise OwnershipMismatchError(invoice.id, invoice.invoice_number, student_id)

            prior_paid = await self._prior_paid(invoice_ids)
            for invoice_id, amount in requested:
                self.invoices.check_payment(invoices[invoice_id], amount, prior_paid[invoice_id])

            # Everything validated: take the receipt number and write
            receipt_number = await self._take_receipt_number()
            payment = Payment(
                receipt_number=receipt_number,
                student_id=student_id,
                amount=sum_money(amount for _, amount in requested),
                payment_method=method.value,
                payment_date=payment_date or datetime.now(timezone.utc),
                status=PaymentStatus.COMPLETED.value,
                notes=notes,
            )
            payment.allocations = [
                PaymentAllocation(invoice_id=invoice_id, amount=amount, position=position)
                for position, (invoice_id, amount) in enumerate(requested)
            ]
            for invoice_id, amount in requested:
                self.invoices.record_payment(invoices[invoice_id], amount, prior_paid[invoice_id])

            self.db.add(payment)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.PAYMENT_REGISTER,
                entity_type="Payment",
                entity_id=payment.id,
                entity_identifier=receipt_number,
                user_id=user_id,
                new_values={
                    "student_id": student_id,
                    "amount": str(payment.amount),
                    "payment_method": method.value,
                    "allocations": [
                        {"invoice_id": invoice_id, "amount": str(amount)}
                        for invoice_id, amount in requested
                    ],
                },
            )
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except (OperationalError, IntegrityError) as exc:
            await self.db.rollback()
            logger.warning("Payment for student %s rolled back on conflict: %s", student_id, exc)
            raise ConcurrencyConflictError() from exc

        logger.info(
            "Payment %s registered for student %s: %s over %d invoice(s)",
            receipt_number,
            student_id,
            payment.amount,
            len(requested),
        )
        payment = await self.get_payment_by_id(payment.id)
        return self._build_result(payment, [invoices[invoice_id] for invoice_id in invoice_ids])

    async def void_payment(
        self, payment_id: int, reason: str, user_id: int | None = None
    ) -> PaymentResult:
        """Void a payment and give its allocations back to the invoices. Receipt number is kept."""
        try:
            payment = await self._get_payment_for_update(payment_id)
            if payment.is_void:
                raise ValidationError(
                    f"Payment {payment.receipt_number} is already void", field="status"
                )

            invoice_ids = [allocation.invoice_id for allocation in payment.allocations]
            invoices = await self._lock_invoices(invoice_ids)
            prior_paid = await self._prior_paid(invoice_ids)

            for allocation in payment.allocations:
                invoice = invoices[allocation.invoice_id]
                self.invoices.reverse_payment(
                    invoice, allocation.amount, prior_paid[allocation.invoice_id]
                )
                prior_paid[allocation.invoice_id] -= allocation.amount

            payment.status = PaymentStatus.VOID.value
            payment.void_reason = reason
            payment.voided_at = datetime.now(timezone.utc)

            await self.audit.log(
                action=AuditAction.PAYMENT_VOID,
                entity_type="Payment",
                entity_id=payment.id,
                entity_identifier=payment.receipt_number,
                user_id=user_id,
                old_values={"status": PaymentStatus.COMPLETED.value},
                new_values={"status": PaymentStatus.VOID.value},
                comment=reason,
            )
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except (OperationalError, IntegrityError) as exc:
            await self.db.rollback()
            logger.warning("Void of payment %s rolled back on conflict: %s", payment_id, exc)
            raise ConcurrencyConflictError() from exc

        logger.info("Payment %s voided: %s", payment.receipt_number, reason)
        payment = await self.get_payment_by_id(payment_id)
        return self._build_result(payment, [invoices[invoice_id] for invoice_id in invoice_ids])

    # --- Queries ---

    async def get_payment_by_id(self, payment_id: int) -> Payment:
        """Get payment by ID with allocations loaded."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .options(selectinload(Payment.allocations))
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def get_payment_by_receipt_number(self, receipt_number: str) -> Payment:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.receipt_number == receipt_number)
            .options(selectinload(Payment.allocations))
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", receipt_number)
        return payment

    async def list_payments(
        self, filters: PaymentFilters
    ) -> tuple[list[Payment], int]:
        """List payments with filters, newest first."""
        query = select(Payment).options(selectinload(Payment.allocations))

        if filters.student_id:
            query = query.where(Payment.student_id == filters.student_id)
        if filters.status:
            query = query.where(Payment.status == filters.status.value)
        if filters.payment_method:
            query = query.where(Payment.payment_method == filters.payment_method.value)
        if filters.date_from:
            query = query.where(
                Payment.payment_date >= datetime.combine(filters.date_from, time.min, timezone.utc)
            )
        if filters.date_to:
            next_day = filters.date_to + timedelta(days=1)
            query = query.where(
                Payment.payment_date < datetime.combine(next_day, time.min, timezone.utc)
            )

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        # Paginate
        query = query.order_by(Payment.payment_date.desc(), Payment.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        result = await self.db.execute(query)
        payments = list(result.scalars().all())

        return payments, total

    async def list_payments_for_invoice(self, invoice_id: int) -> list[Payment]:
        """Payments (including void ones) with an allocation to the invoice."""
        await self.invoices.get_invoice_by_id(invoice_id)
        result = await self.db.execute(
            select(Payment)
            .where(
                Payment.id.in_(
                    select(PaymentAllocation.payment_id).where(
                        PaymentAllocation.invoice_id == invoice_id
                    )
                )
            )
            .options(selectinload(Payment.allocations))
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    # --- Helper Methods ---

    async def _take_receipt_number(self) -> str:
        """Next receipt number. A number already printed on a payment is never reissued."""
        receipt_number = await DocumentNumberGenerator(self.db).next_number(
            DocumentCategory.RECEIPT
        )
        existing = await self.db.execute(
            select(Payment.id).where(Payment.receipt_number == receipt_number)
        )
        if existing.scalar_one_or_none() is not None:
            logger.error("Receipt counter produced %s, which is already in use", receipt_number)
            raise DocumentNumberInUseError(receipt_number, DocumentCategory.RECEIPT.value)
        return receipt_number

    async def _get_payment_for_update(self, payment_id: int) -> Payment:
        """Load and row-lock a payment, refreshing any copy already in the session."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .options(selectinload(Payment.allocations))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    def _normalize_allocations(
        self, allocations: Sequence[AllocationIn]
    ) -> list[tuple[int, Decimal]]:
        """Validate amounts before touching the store. Keeps the given order."""
        if not allocations:
            raise InvalidAmountError("A payment must be applied to at least one invoice")

        requested: list[tuple[int, Decimal]] = []
        seen: set[int] = set()
        for allocation in allocations:
            raw = allocation.amount
            try:
                amount = round_money(raw)
            except ValueError:
                raise InvalidAmountError(
                    f"Invalid payment amount: {raw!r}", invoice_id=allocation.invoice_id
                ) from None
            if amount <= ZERO:
                raise InvalidAmountError(
                    f"Payment amount must be greater than zero, got {raw}",
                    invoice_id=allocation.invoice_id,
                    amount=amount,
                )
            if allocation.invoice_id in seen:
                raise ValidationError(
                    f"Invoice {allocation.invoice_id} appears more than once in the payment",
                    field="allocations",
                )
            seen.add(allocation.invoice_id)
            requested.append((allocation.invoice_id, amount))
        return requested

    async def _lock_invoices(self, invoice_ids: list[int]) -> dict[int, Invoice]:
        """Load and lock invoices in id order so concurrent payers queue up consistently."""
        if not invoice_ids:
            return {}
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id.in_(invoice_ids))
            .order_by(Invoice.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invoices = {invoice.id: invoice for invoice in result.scalars().all()}
        for invoice_id in invoice_ids:
            if invoice_id not in invoices:
                raise InvoiceNotFoundError(invoice_id)
        return invoices

    async def _prior_paid(self, invoice_ids: list[int]) -> dict[int, Decimal]:
        """Sum of completed allocations per invoice, read inside the current transaction."""
        result = await self.db.execute(
            select(PaymentAllocation.invoice_id, func.sum(PaymentAllocation.amount))
            .join(Payment, Payment.id == PaymentAllocation.payment_id)
            .where(
                PaymentAllocation.invoice_id.in_(invoice_ids),
                Payment.status == PaymentStatus.COMPLETED.value,
            )
            .group_by(PaymentAllocation.invoice_id)
        )
        paid = {invoice_id: ZERO for invoice_id in invoice_ids}
        for invoice_id, total in result.all():
            paid[invoice_id] = round_money(total or 0)
        return paid

    def _build_result(self, payment: Payment, invoices: list[Invoice]) -> PaymentResult:
        return PaymentResult(
            payment=PaymentResponse.model_validate(payment),
            invoices=[
                InvoiceBalance(
                    id=invoice.id,
                    invoice_number=invoice.invoice_number,
                    status=invoice.status,
                    total=invoice.total,
                    paid_total=invoice.paid_total,
                    amount_due=invoice.amount_due,
                )
                for invoice in invoices
            ],
        )
