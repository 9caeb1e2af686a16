from app.routers.auth import router as auth_router
from app.routers.expenses import router as expenses_router
from app.routers.audit_logs import router as audit_logs_router

__all__ = ["auth_router", "expenses_router", "audit_logs_router"]
