from academy_ledger.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    DuplicateError,
    StudentNotFoundError,
    InvoiceNotFoundError,
    InvalidAmountError,
    OwnershipMismatchError,
    InvoiceAlreadySettledError,
    InvoiceNotIssuedError,
    InvoiceNotEditableError,
    PaymentExceedsBalanceError,
    InvalidDocumentCategoryError,
    NoPaymentsFoundError,
    ConcurrencyConflictError,
    DocumentNumberInUseError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "DuplicateError",
    "StudentNotFoundError",
    "InvoiceNotFoundError",
    "InvalidAmountError",
    "OwnershipMismatchError",
    "InvoiceAlreadySettledError",
    "InvoiceNotIssuedError",
    "InvoiceNotEditableError",
    "PaymentExceedsBalanceError",
    "InvalidDocumentCategoryError",
    "NoPaymentsFoundError",
    "ConcurrencyConflictError",
    "DocumentNumberInUseError",
]
