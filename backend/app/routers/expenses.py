"""Expense API endpoints with owner scoping and audit logging."""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.auth import get_current_user
from app.config import get_settings
from app.database import get_db
from app.dependencies import get_expense_service
from app.models import User
from app.schemas import ExpenseCreate, ExpenseOut, ExpenseUpdate, MessageResponse
from app.services.expense_service import ExpenseNotFound, ExpenseService
from app.services.reporting_service import daily_totals

router = APIRouter(prefix="/api/expense", tags=["expenses"])
settings = get_settings()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Expense not found")


@router.post("", response_model=ExpenseOut, status_code=201)
def create_expense(data: ExpenseCreate, service: ExpenseService = Depends(get_expense_service)):
    """Add an expense for the current user."""
    return service.create(data)


@router.get("", response_model=List[ExpenseOut])
def list_expenses(service: ExpenseService = Depends(get_expense_service)):
    """List the current user's expenses, newest date first."""
    return service.list()


@router.get("/summary/daily", response_model=Dict[str, float])
def daily_summary(
    days: Optional[int] = Query(default=None, ge=1, le=366),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Spending per day over the trailing window, one key per day."""
    return daily_totals(db, current_user.id, days or settings.report_window_days)


@router.get("/{expense_id}", response_model=ExpenseOut)
def get_expense(expense_id: int, service: ExpenseService = Depends(get_expense_service)):
    try:
        return service.get(expense_id)
    except ExpenseNotFound:
        raise _not_found()


@router.put("/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    service: ExpenseService = Depends(get_expense_service),
):
    """Apply a partial update; one audit entry per changed field."""
    try:
        return service.update(expense_id, data)
    except ExpenseNotFound:
        raise _not_found()


@router.delete("/{expense_id}", response_model=MessageResponse)
def delete_expense(expense_id: int, service: ExpenseService = Depends(get_expense_service)):
    try:
        service.delete(expense_id)
    except ExpenseNotFound:
        raise _not_found()
    return {"message": "Expense deleted successfully"}
