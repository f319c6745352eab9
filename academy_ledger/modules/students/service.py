"""Student directory used by the billing core."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.exceptions import DuplicateError, StudentNotFoundError
from academy_ledger.modules.students.models import Student
from academy_ledger.modules.students.schemas import StudentCreate


class StudentService:
    """Lookup (and minimal registration) of students."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def student_exists(self, student_id: int) -> bool:
        result = await self.db.execute(select(Student.id).where(Student.id == student_id))
        return result.scalar_one_or_none() is not None

    async def get_student(self, student_id: int) -> Student:
        """Get student by ID."""
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise StudentNotFoundError(student_id)
        return student

    async def create_student(self, data: StudentCreate) -> Student:
        """Register a student. Full student CRUD lives in the academic service."""
        if data.document_id:
            existing = await self.db.execute(
                select(Student.id).where(Student.document_id == data.document_id)
            )
            if existing.scalar_one_or_none():
                raise DuplicateError("Student", "document_id", data.document_id)

        student = Student(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            document_id=data.document_id,
            tax_condition=data.tax_condition.value,
            is_active=True,
        )
        self.db.add(student)
        await self.db.commit()
        return await self.get_student(student.id)
