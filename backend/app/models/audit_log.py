"""Audit log model for tracking expense changes and sign-in events."""
import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from app.database import Base


class AuditAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Append-only trail entry.

    ``expense_id`` is a plain integer rather than a foreign key: delete entries
    must keep pointing at an expense that no longer exists.
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expense_id = Column(Integer, nullable=True, index=True)
    action = Column(String(20), nullable=False, index=True)  # AuditAction value
    change_field = Column(String(50), nullable=True)  # tracked field name or 'all'
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    ip = Column(String(50), nullable=True)
    user_agent = Column(String(500), nullable=True)

    @property
    def changes(self) -> dict | None:
        if self.change_field is None:
            return None
        return {
            "field": self.change_field,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', field='{self.change_field}')>"
