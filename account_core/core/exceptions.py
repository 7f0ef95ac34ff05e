"""
Typed failures raised by the account core.

Every core operation either returns its result or raises exactly one
``AuthError`` subclass. The HTTP layer maps ``status_code`` onto the response;
nothing in this module depends on a web framework.
"""
from typing import Any, Dict, List, Optional


class AuthError(Exception):
    """Base class for classified account-core failures."""

    code: str = "AUTH_ERROR"
    status_code: int = 400
    default_message: str = "authentication error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class MissingParametersError(AuthError):
    code = "MISSING_PARAMETERS"
    default_message = "missing parameters"


class ValidationError(AuthError):
    """Field-level validation failure; ``fields`` names every offending field."""

    code = "VALIDATION_ERROR"
    default_message = "validation failed"

    def __init__(self, fields: Dict[str, List[str]], message: Optional[str] = None):
        self.fields = fields
        super().__init__(message, details={"fields": fields})


class NotFoundError(AuthError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "username doesn't exist"


class ConflictError(AuthError):
    code = "CONFLICT"
    status_code = 409
    default_message = "username already exists"


class InvalidCredentialsError(AuthError):
    code = "INVALID_CREDENTIALS"
    default_message = "password not match"


class AlreadyVerifiedError(AuthError):
    code = "ALREADY_VERIFIED"
    default_message = "already verified"


class NotVerifiedError(AuthError):
    code = "NOT_VERIFIED"
    default_message = "email hasn't been verified"


class MissingTokenError(AuthError):
    code = "MISSING_TOKEN"
    status_code = 404
    default_message = "token not found"


class InvalidTokenError(AuthError):
    code = "INVALID_TOKEN"
    status_code = 401
    default_message = "invalid token"


class ExpiredTokenError(AuthError):
    code = "EXPIRED_TOKEN"
    status_code = 401
    default_message = "token expired"


class InvalidTokenPurposeError(AuthError):
    code = "INVALID_TOKEN_PURPOSE"
    default_message = "invalid token purpose"


class InvalidCodeError(AuthError):
    code = "INVALID_CODE"
    default_message = "invalid forgot code"


class CodeStoreBusyError(AuthError):
    """Another worker holds the username's code-store lock."""

    code = "CODE_STORE_BUSY"
    status_code = 503
    default_message = "code store busy, try again"
