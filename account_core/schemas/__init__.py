from .auth_schemas import (
    ApiResponse,
    AuthResult,
    ErrorResponse,
    LoginBody,
    RegisterBody,
    RegistrationRequest,
    ResetPasswordBody,
    UserResponse,
)

__all__ = [
    "ApiResponse",
    "AuthResult",
    "ErrorResponse",
    "LoginBody",
    "RegisterBody",
    "RegistrationRequest",
    "ResetPasswordBody",
    "UserResponse",
]
