"""Audit trail: recording, querying and counting per-user audit entries.

Writes are best effort. A failed audit insert is rolled back, logged and
reported to the ``on_failure`` callback; it never propagates to the caller,
so an audit outage cannot fail the expense operation it accompanies.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from operator import attrgetter
from typing import Any, Callable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import AuditAction, AuditLog, Expense

logger = logging.getLogger("expense_tracker.audit")

# Fields diffed on update, in the order their entries are written.
TRACKED_FIELDS: tuple[tuple[str, Callable[[Expense], Any]], ...] = (
    ("description", attrgetter("description")),
    ("amount", attrgetter("amount")),
    ("date", attrgetter("date")),
)

MAX_QUERY_LIMIT = 500

FailureCallback = Callable[[Exception, AuditLog], None]


@dataclass(frozen=True)
class RequestContext:
    """Requester details attached to every entry written during a request."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None


def to_json_value(value: Any) -> Any:
    """Normalise a field value for JSON storage and structural comparison."""
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def expense_snapshot(expense: Expense) -> dict:
    """Denormalised copy of the tracked fields of an expense."""
    return {name: to_json_value(getter(expense)) for name, getter in TRACKED_FIELDS}


def diff_expense(before: dict, expense: Expense) -> list[tuple[str, Any, Any]]:
    """Return ``(field, old, new)`` for every tracked field that changed."""
    changed = []
    for name, getter in TRACKED_FIELDS:
        new_value = to_json_value(getter(expense))
        if before.get(name) != new_value:
            changed.append((name, before.get(name), new_value))
    return changed


def _format_amount(value: Any) -> str:
    try:
        return f"{Decimal(str(value)):.2f}"
    except ArithmeticError:
        return str(value)


class AuditService:
    """Owner-scoped access to the audit trail."""

    def __init__(
        self,
        db: Session,
        user_id: int,
        context: Optional[RequestContext] = None,
        on_failure: Optional[FailureCallback] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.context = context or RequestContext()
        self.on_failure = on_failure

    # ── Recording ─────────────────────────────────────────────
    def record(
        self,
        action: AuditAction,
        *,
        expense_id: Optional[int] = None,
        field: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        description: Optional[str] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            user_id=self.user_id,
            expense_id=expense_id,
            action=AuditAction(action).value,
            change_field=field,
            old_value=old_value,
            new_value=new_value,
            description=description,
            ip=self.context.ip,
            user_agent=self.context.user_agent,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                "Audit write failed (user=%s action=%s expense=%s): %s",
                self.user_id, entry.action, expense_id, exc,
            )
            if self.on_failure is not None:
                try:
                    self.on_failure(exc, entry)
                except Exception:
                    logger.exception("Audit failure callback raised (user=%s action=%s)", self.user_id, entry.action)
            return None
        return entry

    def record_created(self, expense: Expense) -> Optional[AuditLog]:
        snapshot = expense_snapshot(expense)
        return self.record(
            AuditAction.CREATE,
            expense_id=expense.id,
            field="all",
            old_value=None,
            new_value=snapshot,
            description=(
                f'Created new expense: "{snapshot["description"]}" '
                f'({_format_amount(snapshot["amount"])})'
            ),
        )

    def record_updated(self, expense_id: int, before: dict, expense: Expense) -> list[AuditLog]:
        entries = []
        for field, old_value, new_value in diff_expense(before, expense):
            entry = self.record(
                AuditAction.UPDATE,
                expense_id=expense_id,
                field=field,
                old_value=old_value,
                new_value=new_value,
                description=f'Updated {field} from "{old_value}" to "{new_value}"',
            )
            if entry is not None:
                entries.append(entry)
        return entries

    def record_deleted(self, expense_id: int, snapshot: dict) -> Optional[AuditLog]:
        return self.record(
            AuditAction.DELETE,
            expense_id=expense_id,
            field="all",
            old_value=snapshot,
            new_value=None,
            description=(
                f'Deleted expense: "{snapshot["description"]}" '
                f'({_format_amount(snapshot["amount"])})'
            ),
        )

    # ── Reading ───────────────────────────────────────────────
    def query(
        self,
        action: Optional[AuditAction] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[AuditLog]:
        """Entries newest first, optionally filtered by kind and an inclusive day range."""
        if date_from and date_to and date_from > date_to:
            raise ValueError("'from' must not be after 'to'")
        if limit is not None and not 1 <= limit <= MAX_QUERY_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_QUERY_LIMIT}")

        q = self.db.query(AuditLog).filter(AuditLog.user_id == self.user_id)
        if action is not None:
            q = q.filter(AuditLog.action == AuditAction(action).value)
        if date_from is not None:
            q = q.filter(AuditLog.timestamp >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
        if date_to is not None:
            end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
            q = q.filter(AuditLog.timestamp < end)
        q = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def stats(self) -> dict[str, int]:
        """Entry count per action kind; kinds with no entries report 0."""
        counts = {action.value: 0 for action in AuditAction}
        rows = (
            self.db.query(AuditLog.action, func.count(AuditLog.id))
            .filter(AuditLog.user_id == self.user_id)
            .group_by(AuditLog.action)
            .all()
        )
        for action, count in rows:
            if action in counts:
                counts[action] = count
        return counts
