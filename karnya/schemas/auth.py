from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from karnya.core.permissions import UserType
from .base import BaseSchema


class RegisterIn(BaseSchema):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    user_type: UserType
    phone: Optional[str] = Field(None, max_length=30)


class LoginIn(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)


class EmailIn(BaseSchema):
    email: EmailStr


class VerifyEmailIn(BaseSchema):
    token: str = Field(..., min_length=1)


class ResetPasswordIn(BaseSchema):
    password: str = Field(..., min_length=6)


class ProfileIn(BaseSchema):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("first_name", "last_name")
    @classmethod
    def _names_not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class AccountOut(BaseSchema):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    user_type: str
    role: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class AuthOut(BaseSchema):
    success: bool = True
    token: str
    user: AccountOut


class VerifiedOut(BaseSchema):
    message: str
    user: AccountOut
