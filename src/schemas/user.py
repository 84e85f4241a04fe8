"""User schema definitions.

This module defines the User data models, the request bodies accepted by the
auth and user routes, and the row schema used by the spreadsheet importer.
Field errors are raised as ``PydanticCustomError`` so the message a caller
sees is exactly the one written here.
"""

import math
import numbers
import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 100
LOGIN_PASSWORD_MIN_LENGTH = 4
AGE_MIN = 1
AGE_MAX = 150

# Latin letters plus the Turkish alphabet, and whitespace
NAME_PATTERN = re.compile(r"^[a-zA-ZğüşıöçĞÜŞİÖÇ\s]+$")

FIELD_LABELS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "age": "Age",
    "password": "Password",
}


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


def _fail(error_type: str, message: str) -> None:
    raise PydanticCustomError(error_type, message)


def _required_text(value: Any, label: str) -> str:
    """Return *value* if it is a non-blank string, else raise a field error."""
    if value is None or (isinstance(value, str) and not value.strip()):
        _fail("required", f"{label} is required")
    if not isinstance(value, str):
        _fail("string_type", f"{label} must be text")
    return value


def _checked_email(value: Any) -> str:
    email = _required_text(value, "Email").strip()
    if len(email) > EMAIL_MAX_LENGTH:
        _fail(
            "too_long",
            f"Email must be at most {EMAIL_MAX_LENGTH} characters",
        )
    # Bare addresses only, no "Name <addr>" forms
    try:
        validate_email(
            email,
            allow_display_name=False,
            check_deliverability=False,
            test_environment=True,
        )
    except EmailNotValidError:
        _fail("email_format", "Invalid email format")
    return email


class User(BaseModel):
    """Internal user representation, including the password hash."""

    id: str
    first_name: str
    last_name: str
    email: str
    age: int
    password_hash: str
    role: UserRole = UserRole.USER
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserPublic(BaseModel):
    """User as returned by the API. Never carries credentials."""

    id: str
    first_name: str
    last_name: str
    email: str
    age: int
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImportRow(BaseModel):
    """One spreadsheet row after header mapping and coercion.

    Aliases are the canonical spreadsheet field identifiers, so error
    locations read ``firstName``, ``lastName``, ``email``, ``age``,
    ``password``. Every field is validated even when absent, which lets a
    missing cell surface as "<Label> is required".
    """

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(default=None, alias="firstName", validate_default=True)
    last_name: str = Field(default=None, alias="lastName", validate_default=True)
    email: str = Field(default=None, validate_default=True)
    age: int = Field(default=None, validate_default=True)
    password: str = Field(default=None, validate_default=True)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _check_name(cls, value: Any, info) -> str:
        label = FIELD_LABELS[info.field_name]
        name = _required_text(value, label).strip()
        if len(name) > NAME_MAX_LENGTH:
            _fail("too_long", f"{label} must be at most {NAME_MAX_LENGTH} characters")
        return name

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _checked_email(value)

    @field_validator("age", mode="before")
    @classmethod
    def _check_age(cls, value: Any) -> int:
        if value is None or (isinstance(value, str) and not value.strip()):
            _fail("required", "Age is required")
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            _fail("number_type", "Age must be a number")
        if isinstance(value, numbers.Integral):
            age = int(value)
        else:
            number = float(value)
            if not math.isfinite(number) or not number.is_integer():
                _fail("int_type", "Age must be an integer")
            age = int(number)
        if age < AGE_MIN:
            _fail("too_small", f"Age must be at least {AGE_MIN}")
        if age > AGE_MAX:
            _fail("too_large", f"Age must be at most {AGE_MAX}")
        return age

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> str:
        password = _required_text(value, "Password")
        if len(password) < PASSWORD_MIN_LENGTH:
            _fail(
                "too_short",
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
            )
        if len(password) > PASSWORD_MAX_LENGTH:
            _fail(
                "too_long",
                f"Password must be at most {PASSWORD_MAX_LENGTH} characters",
            )
        return password


class CreateUserRequest(ImportRow):
    """Request body for creating a single user.

    Same rules as a spreadsheet row, plus names restricted to letters and
    spaces. Bulk imports deliberately do not apply that restriction.
    """

    @field_validator("first_name", "last_name")
    @classmethod
    def _letters_only(cls, value: str, info) -> str:
        if not NAME_PATTERN.match(value):
            label = FIELD_LABELS[info.field_name]
            _fail("name_pattern", f"{label} can only contain letters")
        return value


class LoginRequest(BaseModel):
    email: str = Field(default=None, validate_default=True)
    password: str = Field(default=None, validate_default=True)

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _checked_email(value)

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> str:
        password = _required_text(value, "Password")
        if len(password) < LOGIN_PASSWORD_MIN_LENGTH:
            _fail(
                "too_short",
                f"Password must be at least {LOGIN_PASSWORD_MIN_LENGTH} characters",
            )
        return password


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    user: UserPublic
    token: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserListData(BaseModel):
    users: List[UserPublic]
    pagination: Pagination
