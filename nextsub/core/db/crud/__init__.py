from nextsub.core.db.crud.admin_code import AdminCodeDB
from nextsub.core.db.crud.audit_entry import AuditEntryDB
from nextsub.core.db.crud.base import BaseDB

# Global CRUD instances - use these instead of creating new instances
admin_code_db = AdminCodeDB()
audit_entry_db = AuditEntryDB()

__all__ = [
    # Classes (for type hints and subclassing)
    "AdminCodeDB",
    "AuditEntryDB",
    "BaseDB",
    # Global instances (for actual usage)
    "admin_code_db",
    "audit_entry_db",
]
