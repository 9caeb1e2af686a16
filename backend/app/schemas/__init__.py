"""Pydantic request/response schemas for all API endpoints."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models import AuditAction


def _strip_required(value: str | None, name: str) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{name} must not be empty")
    return cleaned


# ═══════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _strip_required(v, "name")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class MessageResponse(BaseModel):
    message: str


class UserProfile(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


# ═══════════════════════════════════════════════════════════════
# Expenses
# ═══════════════════════════════════════════════════════════════

class ExpenseCreate(BaseModel):
    description: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    date: dt.date | None = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        return _strip_required(v, "description")


class ExpenseUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    description: str | None = None
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    date: dt.date | None = None

    @field_validator("description", "amount", "date", mode="before")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} must not be null")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        return _strip_required(v, "description")


class ExpenseOut(BaseModel):
    id: int
    description: str
    amount: float
    date: dt.date

    model_config = {"from_attributes": True}


# ═══════════════════════════════════════════════════════════════
# Audit
# ═══════════════════════════════════════════════════════════════

class AuditChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class AuditLogOut(BaseModel):
    id: int
    timestamp: dt.datetime
    action: AuditAction
    expense_id: int | None
    changes: AuditChange | None
    description: str | None
    ip: str | None
    user_agent: str | None

    model_config = {"from_attributes": True}


class OperationCounts(BaseModel):
    create: int = 0
    update: int = 0
    delete: int = 0
