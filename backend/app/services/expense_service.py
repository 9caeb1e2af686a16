"""Owner-scoped expense CRUD with audit side effects."""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.audit import AuditService, expense_snapshot
from app.models import Expense
from app.schemas import ExpenseCreate, ExpenseUpdate

logger = logging.getLogger("expense_tracker.expenses")

UPDATABLE_FIELDS = ("description", "amount", "date")


class ExpenseNotFound(LookupError):
    """No expense with the given id is owned by the caller."""

    def __init__(self, expense_id: int):
        super().__init__(f"Expense {expense_id} not found")
        self.expense_id = expense_id


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ExpenseService:
    """CRUD on one user's expenses.

    Every query filters on ``user_id``, so ids belonging to other users behave
    exactly like ids that do not exist.
    """

    def __init__(self, db: Session, user_id: int, audit: AuditService):
        self.db = db
        self.user_id = user_id
        self.audit = audit

    def _owned(self):
        return self.db.query(Expense).filter(Expense.user_id == self.user_id)

    def create(self, data: ExpenseCreate) -> Expense:
        expense = Expense(
            user_id=self.user_id,
            description=data.description,
            amount=data.amount,
            date=data.date or utc_today(),
        )
        try:
            self.db.add(expense)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(expense)
        logger.info("Expense %s created for user %s", expense.id, self.user_id)

        self.audit.record_created(expense)
        return expense

    def list(self) -> List[Expense]:
        return self._owned().order_by(Expense.date.desc(), Expense.id.desc()).all()

    def get(self, expense_id: int) -> Expense:
        expense = self._owned().filter(Expense.id == expense_id).first()
        if expense is None:
            raise ExpenseNotFound(expense_id)
        return expense

    def update(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        expense = self.get(expense_id)
        before = expense_snapshot(expense)

        changes: Dict[str, Any] = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if key in UPDATABLE_FIELDS and value is not None
        }
        for key, value in changes.items():
            setattr(expense, key, value)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(expense)

        self.audit.record_updated(expense_id, before, expense)
        return expense

    def delete(self, expense_id: int) -> dict:
        expense = self.get(expense_id)
        snapshot = expense_snapshot(expense)

        try:
            self.db.delete(expense)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Expense %s deleted for user %s", expense_id, self.user_id)

        self.audit.record_deleted(expense_id, snapshot)
        return snapshot
