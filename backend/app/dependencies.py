"""Per-request service construction for route handlers."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.audit import AuditService, RequestContext
from app.auth import client_ip, get_current_user
from app.database import get_db
from app.models import User
from app.services.expense_service import ExpenseService


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(ip=client_ip(request), user_agent=request.headers.get("user-agent"))


def get_audit_service(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: RequestContext = Depends(get_request_context),
) -> AuditService:
    return AuditService(db, user.id, context)


def get_expense_service(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    audit: AuditService = Depends(get_audit_service),
) -> ExpenseService:
    return ExpenseService(db, user.id, audit)
