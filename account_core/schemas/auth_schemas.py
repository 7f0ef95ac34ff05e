"""
Authentication-related Pydantic schemas for input validation and results.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..models.user import User


class RegistrationRequest(BaseModel):
    """Shape rules a new account must satisfy."""

    username: str = Field(..., min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


class UserResponse(BaseModel):
    """Outward representation of a user; never carries the password hash."""

    username: str
    email: str
    full_name: str
    verified: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.to_public())


class AuthResult(BaseModel):
    """Successful register/login outcome."""

    user: UserResponse
    access_token: str
    token_type: str = "bearer"


# HTTP request bodies. Every field is optional here so the service layer can
# report missing parameters itself.

class RegisterBody(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "username": "alice",
                "password": "Secr3t!",
                "fullName": "Alice A",
                "email": "a@x.com",
            }
        },
    )


class LoginBody(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "Secr3t!"}}
    )


class ResetPasswordBody(BaseModel):
    username: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")
    forgot_code: Optional[str] = Field(None, alias="forgotCode")

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        json_schema_extra={
            "example": {"username": "alice", "newPassword": "N3wSecret", "forgotCode": "482913"}
        },
    )


class ApiResponse(BaseModel):
    """Success envelope returned by every endpoint."""

    status: str = "success"
    data: Any = None


class ErrorResponse(BaseModel):
    """Error envelope returned for classified failures."""

    status: str = "error"
    code: str
    message: str
    details: Optional[dict] = None
