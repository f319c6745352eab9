"""API endpoints for Invoices module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.database.session import get_db
from academy_ledger.modules.invoices.models import InvoiceStatus
from academy_ledger.modules.invoices.schemas import (
    InvoiceCancelRequest,
    InvoiceCreate,
    InvoiceFilters,
    InvoiceIssueRequest,
    InvoiceResponse,
    InvoiceSummary,
    InvoiceUpdate,
    MarkOverdueRequest,
    MarkOverdueResult,
)
from academy_ledger.modules.invoices.service import InvoiceService
from academy_ledger.modules.payments.schemas import PaymentResponse
from academy_ledger.modules.payments.service import PaymentService
from academy_ledger.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/invoices", tags=["Invoices"])


# --- Invoice CRUD ---


@router.post(
    "",
    response_model=ApiResponse[InvoiceResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create an invoice (pending and numbered, or draft when as_draft is set)."""
    service = InvoiceService(db)
    invoice = await service.create_invoice(data)
    return ApiResponse(
        success=True,
        message="Invoice created successfully",
        data=InvoiceResponse.model_validate(invoice),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[InvoiceSummary]],
)
async def list_invoices(
    student_id: int | None = Query(None),
    status: InvoiceStatus | None = Query(None),
    billing_period: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List invoices with filters."""
    service = InvoiceService(db)
    filters = InvoiceFilters(
        student_id=student_id,
        status=status,
        billing_period=billing_period,
        search=search,
        page=page,
        limit=limit,
    )
    invoices, total = await service.list_invoices(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[InvoiceSummary.model_validate(inv) for inv in invoices],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.post(
    "/mark-overdue",
    response_model=ApiResponse[MarkOverdueResult],
)
async def mark_overdue(
    data: MarkOverdueRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Move unpaid invoices past their due date to overdue."""
    service = InvoiceService(db)
    as_of = (data.as_of if data else None) or date.today()
    marked = await service.mark_overdue(as_of)
    return ApiResponse(
        success=True,
        message=f"{marked} invoice(s) marked overdue",
        data=MarkOverdueResult(invoices_marked=marked, as_of=as_of),
    )


@router.get(
    "/{invoice_id}",
    response_model=ApiResponse[InvoiceResponse],
)
async def get_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get invoice by ID with all lines."""
    service = InvoiceService(db)
    invoice = await service.get_invoice_by_id(invoice_id)
    return ApiResponse(
        success=True,
        data=InvoiceResponse.model_validate(invoice),
    )


@router.patch(
    "/{invoice_id}",
    response_model=ApiResponse[InvoiceResponse],
)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Edit a draft invoice."""
    service = InvoiceService(db)
    invoice = await service.update_draft(invoice_id, data)
    return ApiResponse(
        success=True,
        message="Invoice updated successfully",
        data=InvoiceResponse.model_validate(invoice),
    )


@router.delete(
    "/{invoice_id}",
    response_model=ApiResponse[None],
)
async def delete_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a draft invoice."""
    service = InvoiceService(db)
    await service.delete_draft(invoice_id)
    return ApiResponse(success=True, message="Invoice deleted successfully", data=None)


# --- Invoice Lifecycle ---


@router.post(
    "/{invoice_id}/issue",
    response_model=ApiResponse[InvoiceResponse],
)
async def issue_invoice(
    invoice_id: int,
    data: InvoiceIssueRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Issue a draft invoice: assign its number and make it payable."""
    service = InvoiceService(db)
    due_date = data.due_date if data else None
    invoice = await service.issue_invoice(invoice_id, due_date=due_date)
    return ApiResponse(
        success=True,
        message="Invoice issued successfully",
        data=InvoiceResponse.model_validate(invoice),
    )


@router.post(
    "/{invoice_id}/cancel",
    response_model=ApiResponse[InvoiceResponse],
)
async def cancel_invoice(
    invoice_id: int,
    data: InvoiceCancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Cancel an invoice that has received no payments."""
    service = InvoiceService(db)
    invoice = await service.cancel_invoice(invoice_id, reason=data.reason if data else None)
    return ApiResponse(
        success=True,
        message="Invoice cancelled successfully",
        data=InvoiceResponse.model_validate(invoice),
    )


@router.get(
    "/{invoice_id}/payments",
    response_model=ApiResponse[list[PaymentResponse]],
)
async def list_invoice_payments(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Payments with an allocation to this invoice."""
    payments = await PaymentService(db).list_payments_for_invoice(invoice_id)
    return ApiResponse(
        success=True,
        data=[PaymentResponse.model_validate(p) for p in payments],
    )
