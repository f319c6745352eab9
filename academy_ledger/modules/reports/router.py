"""API for student account reports."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.database.session import get_db
from academy_ledger.modules.reports.schemas import StudentBalanceResponse
from academy_ledger.modules.reports.service import ReportService
from academy_ledger.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/students", tags=["Reports"])


@router.get(
    "/{student_id}/balance",
    response_model=ApiResponse[StudentBalanceResponse],
)
async def get_student_balance(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """
    Outstanding balance: total debt, pending vs paid invoice counts and the open invoices.
    """
    service = ReportService(db)
    data = await service.outstanding_balance(student_id)
    return ApiResponse(data=StudentBalanceResponse(**data))
