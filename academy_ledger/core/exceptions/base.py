from decimal import Decimal
from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


# --- Billing errors ---


class StudentNotFoundError(NotFoundError):
    """Owner reference does not resolve in the student directory."""

    def __init__(self, student_id: int):
        super().__init__("Student", student_id)
        self.details = {"field": "student_id", "student_id": student_id}


class InvoiceNotFoundError(NotFoundError):
    """Referenced invoice does not exist."""

    def __init__(self, invoice_id: int | str):
        super().__init__("Invoice", invoice_id)
        self.details = {"field": "invoice_id", "invoice_id": invoice_id}


class InvalidAmountError(AppException):
    """Allocation list is empty or an amount is not positive."""

    def __init__(self, message: str, invoice_id: int | None = None, amount: Decimal | None = None):
        details: dict[str, Any] = {"field": "allocations"}
        if invoice_id is not None:
            details["invoice_id"] = invoice_id
        if amount is not None:
            details["amount"] = str(amount)
        super().__init__(message=message, status_code=422, details=details)


class OwnershipMismatchError(AppException):
    """Invoice belongs to a different student than the payer."""

    def __init__(self, invoice_id: int, invoice_number: str | None, student_id: int):
        message = f"Invoice {invoice_number or invoice_id} does not belong to student {student_id}"
        super().__init__(
            message=message,
            status_code=409,
            details={
                "field": "invoice_id",
                "invoice_id": invoice_id,
                "invoice_number": invoice_number,
                "student_id": student_id,
            },
        )


class InvoiceAlreadySettledError(AppException):
    """Invoice is paid or cancelled and cannot take more payments."""

    def __init__(self, invoice_id: int, invoice_number: str | None, status: str):
        message = f"Invoice {invoice_number or invoice_id} cannot receive payments (status '{status}')"
        super().__init__(
            message=message,
            status_code=409,
            details={
                "field": "invoice_id",
                "invoice_id": invoice_id,
                "invoice_number": invoice_number,
                "status": status,
            },
        )


class InvoiceNotIssuedError(AppException):
    """Draft invoices must be issued before they can be paid."""

    def __init__(self, invoice_id: int):
        super().__init__(
            message=f"Invoice with id={invoice_id} is a draft and must be issued before payment",
            status_code=409,
            details={"field": "invoice_id", "invoice_id": invoice_id, "status": "draft"},
        )


class InvoiceNotEditableError(AppException):
    """Edit, delete or cancel attempted outside the allowed states."""

    def __init__(self, invoice_id: int, status: str, action: str = "edit"):
        super().__init__(
            message=f"Cannot {action} invoice with id={invoice_id} in status '{status}'",
            status_code=409,
            details={"invoice_id": invoice_id, "status": status, "action": action},
        )


class PaymentExceedsBalanceError(AppException):
    """Allocation would push the amount paid above the invoice total."""

    def __init__(
        self,
        invoice_id: int,
        invoice_number: str | None,
        total: Decimal,
        already_paid: Decimal,
        attempted: Decimal,
    ):
        balance = total - already_paid
        message = (
            f"Payment exceeds the outstanding balance of invoice {invoice_number or invoice_id}. "
            f"Invoice total: {total}, already paid: {already_paid}, "
            f"balance: {balance}, attempted: {attempted}"
        )
        super().__init__(
            message=message,
            status_code=409,
            details={
                "field": "amount",
                "invoice_id": invoice_id,
                "invoice_number": invoice_number,
                "total": str(total),
                "already_paid": str(already_paid),
                "balance": str(balance),
                "attempted": str(attempted),
            },
        )


class InvalidDocumentCategoryError(AppException):
    """Unknown document counter key."""

    def __init__(self, category: Any):
        super().__init__(
            message=f"Invalid document category: {category!r}",
            status_code=400,
            details={"field": "category", "category": str(category)},
        )


class NoPaymentsFoundError(NotFoundError):
    """Student has no payments on record."""

    def __init__(self, student_id: int):
        super().__init__("Payments for student", student_id)
        self.message = f"No payments found for student with id={student_id}"
        self.args = (self.message,)
        self.details = {"student_id": student_id}


class ConcurrencyConflictError(AppException):
    """Concurrent write conflict detected by the store. Safe to retry."""

    def __init__(self, message: str = "Concurrent update conflict, please retry"):
        super().__init__(message=message, status_code=409, details={"retryable": True})


class DocumentNumberInUseError(AppException):
    """The counter produced a number already printed on a stored document."""

    def __init__(self, document_number: str, category: str):
        super().__init__(
            message=(
                f"Document number {document_number} is already in use. "
                f"The {category} counter is behind the stored documents and must be corrected"
            ),
            status_code=409,
            details={
                "field": "category",
                "category": category,
                "document_number": document_number,
                "retryable": False,
            },
        )
