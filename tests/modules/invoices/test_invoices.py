"""Tests for Invoices module."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import Select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.audit.service import AuditService
from academy_ledger.core.documents import DocumentCategory, DocumentNumberGenerator
from academy_ledger.core.exceptions import (
    DocumentNumberInUseError,
    InvoiceAlreadySettledError,
    InvoiceNotEditableError,
    InvoiceNotFoundError,
    InvoiceNotIssuedError,
    PaymentExceedsBalanceError,
    StudentNotFoundError,
    ValidationError,
)
from academy_ledger.modules.invoices.models import (
    Invoice,
    InvoiceCategory,
    InvoiceStatus,
    invoice_category_for,
)
from academy_ledger.modules.invoices.schemas import (
    InvoiceCreate,
    InvoiceFilters,
    InvoiceLineCreate,
    InvoiceUpdate,
)
from academy_ledger.modules.invoices.service import InvoiceService
from academy_ledger.modules.payments.models import PaymentMethod
from academy_ledger.modules.payments.schemas import AllocationIn
from academy_ledger.modules.payments.service import PaymentService
from academy_ledger.modules.students.models import Student, TaxCondition
from tests.conftest import create_invoice, create_student


class TestInvoiceCategory:
    def test_final_consumer_gets_b(self):
        assert invoice_category_for("Consumidor Final") == InvoiceCategory.B

    @pytest.mark.parametrize(
        "condition", ["Responsable Inscripto", "Monotributista", "Exento"]
    )
    def test_registered_taxpayers_get_a(self, condition):
        assert invoice_category_for(condition) == InvoiceCategory.A

    def test_unknown_condition(self):
        with pytest.raises(ValueError):
            invoice_category_for("Extranjero")


class TestInvoiceService:
    """Tests for InvoiceService."""

    async def test_create_invoice(self, db_session: AsyncSession, student: Student):
        """A new invoice is pending, numbered from the B counter and totalled from its lines."""
        service = InvoiceService(db_session)
        invoice = await service.create_invoice(
            InvoiceCreate(
                student_id=student.id,
                billing_period="2026-03",
                lines=[
                    InvoiceLineCreate(description="March tuition", quantity=1, unit_price=Decimal("4000")),
                    InvoiceLineCreate(description="Workbook", quantity=2, unit_price=Decimal("500.00")),
                ],
            )
        )

        assert invoice.invoice_number == "FB-00001"
        assert invoice.invoice_category == "B"
        assert invoice.tax_condition == TaxCondition.FINAL_CONSUMER.value
        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.subtotal == Decimal("5000.00")
        assert invoice.tax_total == Decimal("0.00")
        assert invoice.total == Decimal("5000.00")
        assert invoice.paid_total == Decimal("0.00")
        assert invoice.amount_due == Decimal("5000.00")
        assert invoice.issue_date == date.today()
        assert invoice.due_date == date.today() + timedelta(days=30)
        assert [line.line_total for line in invoice.lines] == [Decimal("4000.00"), Decimal("1000.00")]

    async def test_registered_taxpayer_gets_a_number(self, db_session: AsyncSession):
        student = await create_student(
            db_session, first_name="Acme", last_name="SRL", tax_condition=TaxCondition.REGISTERED
        )
        invoice = await create_invoice(db_session, student.id, "1200")

        assert invoice.invoice_number == "FA-00001"
        assert invoice.invoice_category == "A"

    async def test_numbers_are_sequential_per_category(
        self, db_session: AsyncSession, student: Student
    ):
        first = await create_invoice(db_session, student.id, "1000")
        second = await create_invoice(db_session, student.id, "1000", billing_period="2026-04")

        assert (first.invoice_number, second.invoice_number) == ("FB-00001", "FB-00002")

    async def test_create_invoice_unknown_student(self, db_session: AsyncSession):
        with pytest.raises(StudentNotFoundError):
            await create_invoice(db_session, 9999, "1000")

        counter = DocumentNumberGenerator(db_session)
        assert await counter.current_value(DocumentCategory.INVOICE_B) == 0

    async def test_create_invoice_without_lines(self, db_session: AsyncSession, student: Student):
        with pytest.raises(ValidationError):
            await create_invoice(db_session, student.id)

    @pytest.mark.parametrize(
        "quantity,unit_price",
        [(0, Decimal("100")), (-1, Decimal("100")), (1, Decimal("0")), (1, Decimal("-5"))],
    )
    async def test_create_invoice_rejects_non_positive_lines(
        self, db_session: AsyncSession, student: Student, quantity, unit_price
    ):
        service = InvoiceService(db_session)
        with pytest.raises(ValidationError):
            await service.create_invoice(
                InvoiceCreate(
                    student_id=student.id,
                    billing_period="2026-03",
                    lines=[InvoiceLineCreate(description="Tuition", quantity=quantity, unit_price=unit_price)],
                )
            )

    async def test_create_writes_audit_entry(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "3000")

        entries = await AuditService(db_session).list_for_entity("Invoice", invoice.id)
        assert [entry.action for entry in entries] == ["invoice.create"]
        assert entries[0].entity_identifier == "FB-00001"

    async def test_get_invoice_not_found(self, db_session: AsyncSession):
        service = InvoiceService(db_session)
        with pytest.raises(InvoiceNotFoundError):
            await service.get_invoice_by_id(12345)
        with pytest.raises(InvoiceNotFoundError):
            await service.get_invoice_by_number("FB-99999")

    async def test_get_invoice_by_number(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "3000")
        found = await InvoiceService(db_session).get_invoice_by_number("FB-00001")
        assert found.id == invoice.id


class TestDraftInvoices:
    """Draft flow: editable, unnumbered until issued."""

    async def test_draft_has_no_number(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "2500", as_draft=True)

        assert invoice.status == InvoiceStatus.DRAFT.value
        assert invoice.invoice_number is None
        assert invoice.issue_date is None
        assert invoice.total == Decimal("2500.00")

    async def test_issue_assigns_number(self, db_session: AsyncSession, student: Student):
        draft = await create_invoice(db_session, student.id, "2500", as_draft=True)
        service = InvoiceService(db_session)

        invoice = await service.issue_invoice(draft.id)

        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.invoice_number == "FB-00001"
        assert invoice.issue_date == date.today()
        assert invoice.due_date == date.today() + timedelta(days=30)

    async def test_issue_twice_fails(self, db_session: AsyncSession, student: Student):
        draft = await create_invoice(db_session, student.id, "2500", as_draft=True)
        service = InvoiceService(db_session)
        await service.issue_invoice(draft.id)

        with pytest.raises(InvoiceNotEditableError):
            await service.issue_invoice(draft.id)

    async def test_update_draft_replaces_lines(self, db_session: AsyncSession, student: Student):
        draft = await create_invoice(db_session, student.id, "2500", "500", as_draft=True)
        service = InvoiceService(db_session)

        invoice = await service.update_draft(
            draft.id,
            InvoiceUpdate(
                billing_period="2026-05",
                lines=[InvoiceLineCreate(description="May tuition", quantity=1, unit_price=Decimal("4000"))],
            ),
        )

        assert invoice.billing_period == "2026-05"
        assert len(invoice.lines) == 1
        assert invoice.total == Decimal("4000.00")
        assert invoice.amount_due == Decimal("4000.00")

    async def test_update_issued_invoice_fails(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "2500")
        service = InvoiceService(db_session)

        with pytest.raises(InvoiceNotEditableError):
            await service.update_draft(invoice.id, InvoiceUpdate(notes="late fee"))

    async def test_deleted_draft_leaves_no_gap(self, db_session: AsyncSession, student: Student):
        """Drafts never take a number, so deleting one keeps the sequence contiguous."""
        service = InvoiceService(db_session)
        draft = await create_invoice(db_session, student.id, "2500", as_draft=True)
        await service.delete_draft(draft.id)

        with pytest.raises(InvoiceNotFoundError):
            await service.get_invoice_by_id(draft.id)

        invoice = await create_invoice(db_session, student.id, "2500")
        assert invoice.invoice_number == "FB-00001"

    async def test_delete_issued_invoice_fails(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "2500")
        with pytest.raises(InvoiceNotEditableError):
            await InvoiceService(db_session).delete_draft(invoice.id)


class TestInvoiceLifecycle:
    async def test_cancel_pending_invoice(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "3000")
        service = InvoiceService(db_session)

        cancelled = await service.cancel_invoice(invoice.id, reason="Enrolment withdrawn")

        assert cancelled.status == InvoiceStatus.CANCELLED.value
        assert cancelled.amount_due == Decimal("0.00")
        entries = await AuditService(db_session).list_for_entity("Invoice", invoice.id)
        assert entries[-1].action == "invoice.cancel"
        assert entries[-1].comment == "Enrolment withdrawn"

    async def test_cancel_invoice_with_payments_fails(
        self, db_session: AsyncSession, student: Student
    ):
        invoice = await create_invoice(db_session, student.id, "3000")
        service = InvoiceService(db_session)
        service.record_payment(invoice, Decimal("1000"), Decimal("0"))
        await db_session.commit()

        with pytest.raises(InvoiceNotEditableError):
            await service.cancel_invoice(invoice.id)

    async def test_mark_overdue(self, db_session: AsyncSession, student: Student):
        service = InvoiceService(db_session)
        late = await service.create_invoice(
            InvoiceCreate(
                student_id=student.id,
                billing_period="2026-01",
                due_date=date.today() - timedelta(days=3),
                lines=[InvoiceLineCreate(description="January tuition", quantity=1, unit_price=Decimal("4000"))],
            )
        )
        on_time = await create_invoice(db_session, student.id, "4000", billing_period="2026-02")

        marked = await service.mark_overdue()

        assert marked == 1
        assert (await service.get_invoice_by_id(late.id)).status == InvoiceStatus.OVERDUE.value
        assert (await service.get_invoice_by_id(on_time.id)).status == InvoiceStatus.PENDING.value

        # Already overdue invoices are not counted twice
        assert await service.mark_overdue() == 0

    async def test_mark_overdue_skips_settled_and_drafts(
        self, db_session: AsyncSession, student: Student
    ):
        service = InvoiceService(db_session)
        cancelled = await create_invoice(db_session, student.id, "1000")
        await service.cancel_invoice(cancelled.id)
        await create_invoice(db_session, student.id, "1000", as_draft=True)

        assert await service.mark_overdue(date.today() + timedelta(days=60)) == 0

    async def test_list_invoices_filters(self, db_session: AsyncSession, student: Student, other_student: Student):
        await create_invoice(db_session, student.id, "1000", billing_period="2026-03")
        await create_invoice(db_session, student.id, "1000", billing_period="2026-04")
        await create_invoice(db_session, other_student.id, "1000", billing_period="2026-03")

        service = InvoiceService(db_session)
        invoices, total = await service.list_invoices(InvoiceFilters(student_id=student.id))
        assert total == 2
        assert {inv.student_id for inv in invoices} == {student.id}

        invoices, total = await service.list_invoices(InvoiceFilters(billing_period="2026-03"))
        assert total == 2

        invoices, total = await service.list_invoices(InvoiceFilters(search="00003"))
        assert [inv.invoice_number for inv in invoices] == ["FB-00003"]


class TestRecordPayment:
    """State rules applied when the ledger records an allocation."""

    async def test_partial_then_full(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "4000")
        service = InvoiceService(db_session)

        service.record_payment(invoice, Decimal("1500"), Decimal("0"))
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value
        assert invoice.amount_due == Decimal("2500.00")

        service.record_payment(invoice, Decimal("2500"), Decimal("1500"))
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.amount_due == Decimal("0.00")

    async def test_exceeding_balance_leaves_invoice_unchanged(
        self, db_session: AsyncSession, student: Student
    ):
        invoice = await create_invoice(db_session, student.id, "5000")
        service = InvoiceService(db_session)
        service.record_payment(invoice, Decimal("2000"), Decimal("0"))

        with pytest.raises(PaymentExceedsBalanceError) as exc_info:
            service.record_payment(invoice, Decimal("3500"), Decimal("2000"))

        assert exc_info.value.details["balance"] == "3000.00"
        assert exc_info.value.details["attempted"] == "3500.00"
        assert invoice.paid_total == Decimal("2000.00")
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value

    async def test_draft_cannot_be_paid(self, db_session: AsyncSession, student: Student):
        draft = await create_invoice(db_session, student.id, "1000", as_draft=True)
        with pytest.raises(InvoiceNotIssuedError):
            InvoiceService(db_session).record_payment(draft, Decimal("100"), Decimal("0"))

    async def test_settled_invoice_cannot_be_paid(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "1000")
        service = InvoiceService(db_session)
        service.record_payment(invoice, Decimal("1000"), Decimal("0"))

        with pytest.raises(InvoiceAlreadySettledError):
            service.record_payment(invoice, Decimal("1"), Decimal("1000"))

    async def test_overdue_invoice_accepts_payment(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "1000")
        invoice.status = InvoiceStatus.OVERDUE.value

        InvoiceService(db_session).record_payment(invoice, Decimal("400"), Decimal("0"))
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value

    async def test_reverse_payment(self, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "1000")
        service = InvoiceService(db_session)
        service.record_payment(invoice, Decimal("1000"), Decimal("0"))

        service.reverse_payment(invoice, Decimal("600"), Decimal("1000"))
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value
        assert invoice.amount_due == Decimal("600.00")

        service.reverse_payment(invoice, Decimal("400"), Decimal("400"))
        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.paid_total == Decimal("0.00")

    async def test_reverse_payment_past_due_goes_back_to_overdue(
        self, db_session: AsyncSession, student: Student
    ):
        invoice = await create_invoice(db_session, student.id, "1000")
        service = InvoiceService(db_session)
        service.record_payment(invoice, Decimal("1000"), Decimal("0"))

        service.reverse_payment(
            invoice, Decimal("1000"), Decimal("1000"), as_of=invoice.due_date + timedelta(days=1)
        )
        assert invoice.status == InvoiceStatus.OVERDUE.value


def record_statements(monkeypatch, session: AsyncSession) -> list:
    """Capture every statement the session executes."""
    statements = []
    original = session.execute

    async def execute(statement, *args, **kwargs):
        statements.append(statement)
        return await original(statement, *args, **kwargs)

    monkeypatch.setattr(session, "execute", execute)
    return statements


def locking_selects(statements: list) -> list[str]:
    """SELECT ... FOR UPDATE statements, rendered as PostgreSQL would receive them."""
    rendered = [
        str(statement.compile(dialect=postgresql.dialect()))
        for statement in statements
        if isinstance(statement, Select)
    ]
    return [sql for sql in rendered if "FOR UPDATE" in sql and "FROM invoices" in sql]


class TestInvoiceLocking:
    """Lifecycle changes validate against a locked, freshly read invoice."""

    async def test_issue_locks_invoice(self, db_session: AsyncSession, student: Student, monkeypatch):
        draft = await create_invoice(db_session, student.id, "1000", as_draft=True)
        statements = record_statements(monkeypatch, db_session)

        await InvoiceService(db_session).issue_invoice(draft.id)

        assert len(locking_selects(statements)) == 1

    async def test_cancel_locks_invoice(self, db_session: AsyncSession, student: Student, monkeypatch):
        invoice = await create_invoice(db_session, student.id, "1000")
        statements = record_statements(monkeypatch, db_session)

        await InvoiceService(db_session).cancel_invoice(invoice.id)

        assert len(locking_selects(statements)) == 1

    async def test_draft_edits_lock_invoice(self, db_session: AsyncSession, student: Student, monkeypatch):
        draft = await create_invoice(db_session, student.id, "1000", as_draft=True)
        statements = record_statements(monkeypatch, db_session)
        service = InvoiceService(db_session)

        await service.update_draft(draft.id, InvoiceUpdate(notes="Two weeks only"))
        await service.delete_draft(draft.id)

        assert len(locking_selects(statements)) == 2

    async def test_cancel_sees_payment_committed_elsewhere(self, file_sessions):
        """A payment committed by another session after this one read the invoice blocks cancellation."""
        async with file_sessions() as clerk, file_sessions() as cashier:
            student = await create_student(clerk)
            invoice = await create_invoice(clerk, student.id, "1000")
            student_id, invoice_id = student.id, invoice.id
            # clerk keeps its copy: pending, nothing paid
            await clerk.commit()

            await PaymentService(cashier).register_payment(
                student_id,
                [AllocationIn(invoice_id=invoice_id, amount=Decimal("400"))],
                PaymentMethod.CASH,
            )
            await cashier.commit()

            with pytest.raises(InvoiceNotEditableError):
                await InvoiceService(clerk).cancel_invoice(invoice_id)
            await clerk.rollback()

        async with file_sessions() as session:
            invoice = await InvoiceService(session).get_invoice_by_id(invoice_id)
            assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value
            assert invoice.paid_total == Decimal("400.00")

    async def test_second_issue_is_refused(self, file_sessions):
        """Issuing a draft another session already issued does not take a second number."""
        async with file_sessions() as first, file_sessions() as second:
            student = await create_student(first)
            draft = await create_invoice(first, student.id, "1000", as_draft=True)
            draft_id = draft.id
            await first.commit()

            await InvoiceService(second).issue_invoice(draft_id)
            await second.commit()

            with pytest.raises(InvoiceNotEditableError):
                await InvoiceService(first).issue_invoice(draft_id)
            await first.rollback()

        async with file_sessions() as session:
            invoice = await InvoiceService(session).get_invoice_by_id(draft_id)
            assert invoice.invoice_number == "FB-00001"
            generator = DocumentNumberGenerator(session)
            assert await generator.current_value(DocumentCategory.INVOICE_B) == 1


class TestInvoiceNumberCollisions:
    """A counter reset below the stored invoices never produces a duplicate number."""

    async def test_create_after_reset(self, db_session: AsyncSession, student: Student):
        student_id = student.id
        await create_invoice(db_session, student_id, "1000")
        await DocumentNumberGenerator(db_session).reset(DocumentCategory.INVOICE_B)
        await db_session.commit()

        with pytest.raises(DocumentNumberInUseError) as exc_info:
            await create_invoice(db_session, student_id, "2000", billing_period="2026-04")

        error = exc_info.value
        assert error.status_code == 409
        assert error.details["document_number"] == "FB-00001"
        assert error.details["category"] == "invoice_B"
        assert error.details["retryable"] is False
        # the rejected attempt leaves the counter where the reset put it
        generator = DocumentNumberGenerator(db_session)
        assert await generator.current_value(DocumentCategory.INVOICE_B) == 0

    async def test_issue_after_reset(self, db_session: AsyncSession, student: Student):
        student_id = student.id
        await create_invoice(db_session, student_id, "1000")
        draft = await create_invoice(db_session, student_id, "2000", as_draft=True)
        draft_id = draft.id
        await DocumentNumberGenerator(db_session).reset(DocumentCategory.INVOICE_B)
        await db_session.commit()

        with pytest.raises(DocumentNumberInUseError):
            await InvoiceService(db_session).issue_invoice(draft_id)

        draft = await InvoiceService(db_session).get_invoice_by_id(draft_id)
        assert draft.status == InvoiceStatus.DRAFT.value
        assert draft.invoice_number is None

    async def test_other_letter_unaffected(self, db_session: AsyncSession, student: Student):
        await create_invoice(db_session, student.id, "1000")
        registered = await create_student(
            db_session, first_name="Acme", last_name="Idiomas", tax_condition=TaxCondition.REGISTERED
        )
        await DocumentNumberGenerator(db_session).reset(DocumentCategory.INVOICE_B)
        await db_session.commit()

        invoice = await create_invoice(db_session, registered.id, "1000")
        assert invoice.invoice_number == "FA-00001"


class TestInvoiceConstraints:
    async def test_total_must_be_positive(self, db_session: AsyncSession, student: Student):
        db_session.add(
            Invoice(
                student_id=student.id,
                tax_condition=student.tax_condition,
                invoice_category=InvoiceCategory.B.value,
                billing_period="2026-03",
                status=InvoiceStatus.PENDING.value,
                subtotal=Decimal("0.00"),
                total=Decimal("0.00"),
                paid_total=Decimal("0.00"),
                amount_due=Decimal("0.00"),
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()


class TestInvoiceEndpoints:
    """API tests for invoices."""

    async def test_create_invoice_api(self, client: AsyncClient, student: Student):
        response = await client.post(
            "/api/v1/invoices",
            json={
                "student_id": student.id,
                "billing_period": "2026-03",
                "lines": [{"description": "March tuition", "quantity": 1, "unit_price": "5000"}],
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["invoice_number"] == "FB-00001"
        assert Decimal(body["data"]["total"]) == Decimal("5000.00")
        assert body["data"]["status"] == "pending"

    async def test_create_invoice_bad_period(self, client: AsyncClient, student: Student):
        response = await client.post(
            "/api/v1/invoices",
            json={
                "student_id": student.id,
                "billing_period": "2026-13",
                "lines": [{"description": "Tuition", "quantity": 1, "unit_price": "100"}],
            },
        )
        assert response.status_code == 422
        assert response.json()["success"] is False

    async def test_create_invoice_unknown_student_api(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/invoices",
            json={
                "student_id": 404,
                "billing_period": "2026-03",
                "lines": [{"description": "Tuition", "quantity": 1, "unit_price": "100"}],
            },
        )
        assert response.status_code == 404

    async def test_draft_issue_and_cancel_api(self, client: AsyncClient, student: Student):
        response = await client.post(
            "/api/v1/invoices",
            json={
                "student_id": student.id,
                "billing_period": "2026-03",
                "as_draft": True,
                "lines": [{"description": "Tuition", "quantity": 1, "unit_price": "100"}],
            },
        )
        invoice_id = response.json()["data"]["id"]
        assert response.json()["data"]["invoice_number"] is None

        response = await client.post(f"/api/v1/invoices/{invoice_id}/issue")
        assert response.status_code == 200
        assert response.json()["data"]["invoice_number"] == "FB-00001"

        response = await client.patch(f"/api/v1/invoices/{invoice_id}", json={"notes": "x"})
        assert response.status_code == 409

        response = await client.post(
            f"/api/v1/invoices/{invoice_id}/cancel", json={"reason": "Duplicate"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

    async def test_get_and_list_invoices_api(self, client: AsyncClient, db_session: AsyncSession, student: Student):
        invoice = await create_invoice(db_session, student.id, "1000")

        response = await client.get(f"/api/v1/invoices/{invoice.id}")
        assert response.status_code == 200
        assert response.json()["data"]["lines"][0]["description"] == "Monthly tuition #1"

        response = await client.get("/api/v1/invoices", params={"student_id": student.id})
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

        response = await client.get("/api/v1/invoices/999")
        assert response.status_code == 404

    async def test_mark_overdue_api(self, client: AsyncClient, db_session: AsyncSession, student: Student):
        await create_invoice(db_session, student.id, "1000")

        as_of = (date.today() + timedelta(days=31)).isoformat()
        response = await client.post("/api/v1/invoices/mark-overdue", json={"as_of": as_of})

        assert response.status_code == 200
        assert response.json()["data"] == {"invoices_marked": 1, "as_of": as_of}
