"""Document counter administration."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.database.session import get_db
from academy_ledger.core.documents.number_generator import (
    DocumentNumberGenerator,
    format_document_number,
    resolve_category,
)
from academy_ledger.shared.schemas.base import ApiResponse, BaseSchema

router = APIRouter(prefix="/documents", tags=["Documents"])


class CounterResponse(BaseSchema):
    category: str
    current_value: int
    next_number: str


async def _counter_state(generator: DocumentNumberGenerator, category: str) -> CounterResponse:
    resolved = resolve_category(category)
    current = await generator.current_value(resolved)
    return CounterResponse(
        category=resolved.value,
        current_value=current,
        next_number=format_document_number(resolved, current + 1),
    )


@router.get(
    "/counters/{category}",
    response_model=ApiResponse[CounterResponse],
)
async def get_counter(
    category: str,
    db: AsyncSession = Depends(get_db),
):
    """Current value of a counter and the number it would issue next. Does not consume it."""
    generator = DocumentNumberGenerator(db)
    return ApiResponse(data=await _counter_state(generator, category))


@router.post(
    "/counters/{category}/reset",
    response_model=ApiResponse[CounterResponse],
)
async def reset_counter(
    category: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Reset a counter to 0. For test setup and recovery only.

    Documents already issued keep their numbers; while the counter is below
    them, new documents of that category are refused as duplicates.
    """
    generator = DocumentNumberGenerator(db)
    await generator.reset(category)
    await db.commit()
    return ApiResponse(
        data=await _counter_state(generator, category),
        message=f"Counter {category} reset",
    )
