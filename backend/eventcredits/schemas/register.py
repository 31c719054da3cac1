import re
from typing import Any, Optional

from pydantic import BaseModel, field_validator


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RegisterRequest(BaseModel):
    name: str
    email: str
    locale: Any = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Name is required")
        if len(value) > 200:
            raise ValueError("Name is too long")
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = (value or "").strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email")
        return value


class RegisteredUser(BaseModel):
    name: str
    email: str
    company: Optional[str] = None


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    credit: str
    isTest: bool
    isExisting: Optional[bool] = None
    emailSent: Optional[bool] = None
    user: RegisteredUser


class RegisterErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
