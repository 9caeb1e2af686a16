"""All SQLAlchemy models – re-exported for Alembic and app use."""

from app.models.user import User
from app.models.expense import Expense
from app.models.audit_log import AuditAction, AuditLog

__all__ = [
    "User",
    "Expense",
    "AuditAction", "AuditLog",
]
