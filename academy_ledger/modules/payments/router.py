"""API endpoints for Payments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.database.session import get_db
from academy_ledger.modules.payments.models import PaymentMethod, PaymentStatus
from academy_ledger.modules.payments.schemas import (
    PaymentCreate,
    PaymentFilters,
    PaymentResponse,
    PaymentResult,
    PaymentVoidRequest,
)
from academy_ledger.modules.payments.service import PaymentService
from academy_ledger.modules.reports.service import ReportService
from academy_ledger.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/payments", tags=["Payments"])


# --- Payment Endpoints ---


@router.post(
    "",
    response_model=ApiResponse[PaymentResult],
    status_code=status.HTTP_201_CREATED,
)
async def register_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a payment against one or more invoices of the student.

    Send either `allocations` or the single-invoice shorthand
    (`invoice_id` + `amount_applied`). One receipt number is issued per call.
    """
    service = PaymentService(db)
    result = await service.register_payment(
        student_id=data.student_id,
        allocations=data.allocations,
        payment_method=data.payment_method,
        payment_date=data.payment_date,
        notes=data.notes,
    )
    return ApiResponse(
        data=result,
        message=f"Payment {result.payment.receipt_number} registered successfully",
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[PaymentResponse]],
)
async def list_payments(
    student_id: int | None = Query(None),
    status: PaymentStatus | None = Query(None),
    payment_method: PaymentMethod | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List payments with optional filters."""
    service = PaymentService(db)
    filters = PaymentFilters(
        student_id=student_id,
        status=status,
        payment_method=payment_method,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    payments, total = await service.list_payments(filters)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[PaymentResponse.model_validate(p) for p in payments],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/students/{student_id}",
    response_model=ApiResponse[list[PaymentResponse]],
)
async def list_student_payments(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Payments of a student, newest first. 404 when the student has none."""
    payments = await ReportService(db).list_payments_for_student(student_id)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])


@router.get(
    "/{payment_id}",
    response_model=ApiResponse[PaymentResponse],
)
async def get_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get payment by ID."""
    service = PaymentService(db)
    payment = await service.get_payment_by_id(payment_id)
    return ApiResponse(data=PaymentResponse.model_validate(payment))


@router.post(
    "/{payment_id}/void",
    response_model=ApiResponse[PaymentResult],
)
async def void_payment(
    payment_id: int,
    data: PaymentVoidRequest,
    db: AsyncSession = Depends(get_db),
):
    """Void a payment. Its invoices get the amounts back; the receipt number stays used."""
    service = PaymentService(db)
    result = await service.void_payment(payment_id, data.reason)
    return ApiResponse(
        data=result,
        message=f"Payment {result.payment.receipt_number} voided",
    )
