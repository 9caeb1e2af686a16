import json
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.limiter import limiter
from app.routers import audit_logs_router, auth_router, expenses_router

settings = get_settings()
logger = logging.getLogger("expense_tracker.api")
logging.basicConfig(level=settings.log_level.upper())

app = FastAPI(
    title="Expense Tracker API",
    description="Personal expense tracking with an audit trail of every change",
    version="1.0.0",
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(SQLAlchemyError)
async def store_failure_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage unavailable"},
    )


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))
    request.state.request_id = req_id

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = req_id
        return response
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(json.dumps({
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": duration_ms,
        }))


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# Include routers
app.include_router(auth_router)
app.include_router(expenses_router)
app.include_router(audit_logs_router)

Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
def health_check():
    """Health check endpoint for Docker."""
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "Expense Tracker API",
        "version": "1.0.0",
        "docs": "/docs",
        "auth": {
            "register": "/api/register",
            "login": "/api/login",
        },
    }
