"""Pydantic schemas for users and auth.

Learn: Each request schema is the allow-list for one operation — only
the named fields are read, anything else in the body is ignored. Bodies
are wrapped the way clients already send them: {"user": {...}}.

Validation errors are collected per field and rendered as
{"messages": {"<field>": ["..."]}} by the handler in main.py.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from taskapi.auth.password import BCRYPT_MAX_BYTES

# local@domain.tld — a '+' tag in the local part needs at least one char after it
EMAIL_RE = re.compile(
    r"^[\w.\-]+(\+[\w.\-]+)?@[a-z\d\-]+(\.[a-z\d\-]+)*\.[a-z]+$", re.IGNORECASE
)
PASSWORD_MIN_LENGTH = 8


def _present(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("can't be blank")
    return value


def _check_email(value: str) -> str:
    _present(value)
    if len(value) > 255:
        raise ValueError("is too long (maximum is 255 characters)")
    if not EMAIL_RE.match(value):
        raise ValueError("is invalid")
    return value


def _check_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(
            f"is too short (minimum is {PASSWORD_MIN_LENGTH} characters)"
        )
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"is too long (maximum is {BCRYPT_MAX_BYTES} bytes)")
    return value


def _check_confirmation(value: str, info: ValidationInfo) -> str:
    if value != info.data.get("password"):
        raise ValueError("doesn't match Password")
    return value


# ─── Registration ────────────────────────────────────────

class UserCreate(BaseModel):
    name: str = Field(..., max_length=100)
    email: str
    password: str
    password_confirmation: str

    @field_validator("name")
    @classmethod
    def name_present(cls, v: str) -> str:
        return _present(v)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("password_confirmation")
    @classmethod
    def confirmation_matches(cls, v: str, info: ValidationInfo) -> str:
        return _check_confirmation(v, info)


class UserCreateRequest(BaseModel):
    user: UserCreate


# ─── Account / password updates ──────────────────────────

class AccountUpdate(BaseModel):
    """Partial update — only fields present in the body are applied."""
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_present(cls, v: Optional[str]) -> str:
        return _present(v)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("can't be blank")
        return _check_email(v)


class AccountUpdateRequest(BaseModel):
    user: AccountUpdate


class PasswordUpdate(BaseModel):
    old_password: str
    password: str
    password_confirmation: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("password_confirmation")
    @classmethod
    def confirmation_matches(cls, v: str, info: ValidationInfo) -> str:
        return _check_confirmation(v, info)


class PasswordUpdateRequest(BaseModel):
    user: PasswordUpdate


# ─── Auth ────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class UserRead(BaseModel):
    uuid: UUID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
