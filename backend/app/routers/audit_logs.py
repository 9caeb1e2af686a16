"""Audit trail endpoints: filtered history, per-kind stats, operation counts."""
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.audit import MAX_QUERY_LIMIT, AuditService
from app.dependencies import get_audit_service
from app.models import AuditAction
from app.schemas import AuditLogOut, OperationCounts
from app.services.reporting_service import operation_counts

router = APIRouter(prefix="/api", tags=["audit"])


@router.get("/audit-logs", response_model=List[AuditLogOut])
def list_audit_logs(
    action: Optional[AuditAction] = None,
    date_from: Optional[date] = Query(default=None, alias="from"),
    date_to: Optional[date] = Query(default=None, alias="to"),
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_QUERY_LIMIT),
    audit: AuditService = Depends(get_audit_service),
):
    """The caller's audit entries, newest first. ``to`` includes the whole day."""
    try:
        return audit.query(action=action, date_from=date_from, date_to=date_to, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/audit-logs/stats", response_model=Dict[str, int])
def audit_stats(audit: AuditService = Depends(get_audit_service)):
    """Entry count for every action kind, zero when absent."""
    return audit.stats()


@router.get("/operation-counts", response_model=OperationCounts)
def get_operation_counts(audit: AuditService = Depends(get_audit_service)):
    return operation_counts(audit)
