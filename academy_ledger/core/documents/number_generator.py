import logging
import re
from enum import StrEnum
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy_ledger.core.audit.service import AuditAction, AuditService
from academy_ledger.core.documents.models import DocumentCounter
from academy_ledger.core.exceptions import InvalidDocumentCategoryError

logger = logging.getLogger(__name__)


class DocumentCategory(StrEnum):
    """Counter keys. Values are persisted, do not rename."""

    INVOICE_A = "invoice_A"
    INVOICE_B = "invoice_B"
    RECEIPT = "receipt"


# Fixed point-of-sale identifier printed on receipts
RECEIPT_POINT_OF_SALE = "00001"

# category -> (prefix, zero-pad width)
DOCUMENT_FORMATS: dict[DocumentCategory, tuple[str, int]] = {
    DocumentCategory.INVOICE_A: ("FA-", 5),
    DocumentCategory.INVOICE_B: ("FB-", 5),
    DocumentCategory.RECEIPT: (f"RC-{RECEIPT_POINT_OF_SALE}-", 8),
}

_PARSE_PATTERNS = {
    category: re.compile(rf"^{re.escape(prefix)}(\d{{{width},}})$")
    for category, (prefix, width) in DOCUMENT_FORMATS.items()
}


def resolve_category(category: Any) -> DocumentCategory:
    """Return the DocumentCategory for a key or raise InvalidDocumentCategoryError."""
    try:
        return DocumentCategory(category)
    except ValueError:
        raise InvalidDocumentCategoryError(category) from None


def format_document_number(category: DocumentCategory | str, sequence: int) -> str:
    """
    Render a sequence value as a document number.

    Pure function of (category, sequence):
        invoice_A, 1  -> FA-00001
        invoice_B, 42 -> FB-00042
        receipt, 1    -> RC-00001-00000001
    """
    prefix, width = DOCUMENT_FORMATS[resolve_category(category)]
    if sequence < 1:
        raise ValueError(f"Document sequence must be positive, got {sequence}")
    return f"{prefix}{sequence:0{width}d}"


def parse_document_number(number: str) -> tuple[DocumentCategory, int]:
    """Inverse of format_document_number."""
    for category, pattern in _PARSE_PATTERNS.items():
        match = pattern.match(number)
        if match:
            return category, int(match.group(1))
    raise ValueError(f"Unrecognized document number: {number!r}")


class DocumentNumberGenerator:
    """
    Issues sequential document numbers, one counter per category.

    All operations run in the caller's transaction: an increment made for a unit
    of work that later rolls back is rolled back with it, so numbers are never
    burned by failed operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_number(self, category: DocumentCategory | str) -> str:
        """
        Increment the counter for category and return the formatted new value.

        The counter row is created with sequence 0 if absent, then incremented
        with a single UPDATE ... RETURNING, so the first call yields 1 and two
        concurrent callers never observe the same value.
        """
        category = resolve_category(category)

        sequence = await self._increment(category)
        if sequence is None:
            await self._create_if_absent(category)
            sequence = await self._increment(category)

        return format_document_number(category, sequence)

    async def current_value(self, category: DocumentCategory | str) -> int:
        """Current sequence for category, 0 if never used. Does not mutate."""
        category = resolve_category(category)
        result = await self.session.execute(
            select(DocumentCounter.sequence).where(DocumentCounter.key == category.value)
        )
        value = result.scalar_one_or_none()
        return value or 0

    async def reset(self, category: DocumentCategory | str, user_id: int | None = None) -> None:
        """
        Set the counter back to 0.

        For test setup and recovery only. Numbering is continuous across
        periods, so after a reset the next numbers collide with stored
        documents until the counter is moved past them, and issuing fails
        with DocumentNumberInUseError.
        """
        category = resolve_category(category)
        previous = await self.current_value(category)

        await self._create_if_absent(category)
        await self.session.execute(
            update(DocumentCounter)
            .where(DocumentCounter.key == category.value)
            .values(sequence=0)
            .execution_options(synchronize_session=False)
        )

        await AuditService(self.session).log(
            action=AuditAction.COUNTER_RESET,
            entity_type="DocumentCounter",
            entity_identifier=category.value,
            user_id=user_id,
            old_values={"sequence": previous},
            new_values={"sequence": 0},
        )
        logger.warning("Document counter %s reset from %s to 0", category.value, previous)

    async def _increment(self, category: DocumentCategory) -> int | None:
        result = await self.session.execute(
            update(DocumentCounter)
            .where(DocumentCounter.key == category.value)
            .values(sequence=DocumentCounter.sequence + 1)
            .returning(DocumentCounter.sequence)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def _create_if_absent(self, category: DocumentCategory) -> None:
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            existing = await self.session.execute(
                select(DocumentCounter.key).where(DocumentCounter.key == category.value)
            )
            if existing.scalar_one_or_none() is None:
                self.session.add(DocumentCounter(key=category.value, sequence=0))
                await self.session.flush()
            return

        await self.session.execute(
            insert(DocumentCounter)
            .values(key=category.value, sequence=0)
            .on_conflict_do_nothing(index_elements=["key"])
        )


async def get_document_number(session: AsyncSession, category: DocumentCategory | str) -> str:
    """Convenience function to generate a document number."""
    generator = DocumentNumberGenerator(session)
    return await generator.next_number(category)
