"""
Read-only reporting over expenses and the audit trail.

Daily totals use UTC calendar days keyed as ``YYYY-MM-DD``. The result always
holds exactly ``window_days`` keys, oldest first, so chart consumers get a
fixed-size series even when there is no data.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.audit import AuditService
from app.models import AuditAction, Expense
from app.services.expense_service import utc_today

OPERATION_KINDS = (AuditAction.CREATE, AuditAction.UPDATE, AuditAction.DELETE)


def day_window(window_days: int, today: Optional[date] = None) -> list[date]:
    """Trailing window of calendar days ending with ``today``."""
    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    end = today or utc_today()
    return [end - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


def daily_totals(
    db: Session,
    user_id: int,
    window_days: int = 7,
    today: Optional[date] = None,
) -> Dict[str, float]:
    days = day_window(window_days, today)
    totals: Dict[date, Decimal] = {day: Decimal("0") for day in days}

    rows = (
        db.query(Expense.date, func.sum(Expense.amount))
        .filter(
            Expense.user_id == user_id,
            Expense.date >= days[0],
            Expense.date <= days[-1],
        )
        .group_by(Expense.date)
        .all()
    )
    for day, total in rows:
        if day in totals and total is not None:
            totals[day] += Decimal(str(total))

    return {day.isoformat(): float(total) for day, total in totals.items()}


def operation_counts(audit: AuditService) -> Dict[str, int]:
    """Create/update/delete counts only; sign-in events are left out."""
    stats = audit.stats()
    return {kind.value: stats.get(kind.value, 0) for kind in OPERATION_KINDS}
