from academy_ledger.core.documents.models import DocumentCounter
from academy_ledger.core.documents.number_generator import (
    DOCUMENT_FORMATS,
    RECEIPT_POINT_OF_SALE,
    DocumentCategory,
    DocumentNumberGenerator,
    format_document_number,
    get_document_number,
    parse_document_number,
    resolve_category,
)

__all__ = [
    "DOCUMENT_FORMATS",
    "RECEIPT_POINT_OF_SALE",
    "DocumentCategory",
    "DocumentCounter",
    "DocumentNumberGenerator",
    "format_document_number",
    "get_document_number",
    "parse_document_number",
    "resolve_category",
]
