from academy_ledger.core.audit.models import AuditLog
from academy_ledger.core.audit.service import AuditAction, AuditService

__all__ = ["AuditLog", "AuditAction", "AuditService"]
