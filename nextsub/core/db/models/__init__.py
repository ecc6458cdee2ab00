from nextsub.core.db.models.admin_code import AdminCode
from nextsub.core.db.models.audit_entry import AuditEntry

__all__ = [
    "AdminCode",
    "AuditEntry",
]
