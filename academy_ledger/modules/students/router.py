"""API endpoints for the student billing directory."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.database.session import get_db
from academy_ledger.modules.students.schemas import StudentCreate, StudentResponse
from academy_ledger.modules.students.service import StudentService
from academy_ledger.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/students", tags=["Students"])


@router.post(
    "",
    response_model=ApiResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    data: StudentCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a student as a payer."""
    service = StudentService(db)
    student = await service.create_student(data)
    return ApiResponse(
        success=True,
        message="Student created successfully",
        data=StudentResponse.model_validate(student),
    )


@router.get(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db)
    student = await service.get_student(student_id)
    return ApiResponse(data=StudentResponse.model_validate(student))
