"""Schemas for Students module."""

from pydantic import Field

from academy_ledger.modules.students.models import TaxCondition
from academy_ledger.shared.schemas.base import BaseSchema


class StudentCreate(BaseSchema):
    """Schema for registering a student in the billing directory."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    document_id: str | None = Field(None, max_length=20)
    tax_condition: TaxCondition = TaxCondition.FINAL_CONSUMER


class StudentResponse(BaseSchema):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str | None
    document_id: str | None
    tax_condition: str
    is_active: bool
