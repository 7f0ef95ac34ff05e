"""
Authentication flows of the account core, one service per flow.
"""

from .authentication_service import AuthenticationService
from .code_store import InMemoryOneTimeCodeStore
from .email_verification_service import EmailVerificationService, build_verification_url
from .mail_dispatcher import MailDispatcher
from .password_service import PasswordService, generate_forgot_code
from .token_service import TokenClaims, TokenService

__all__ = [
    "AuthenticationService",
    "EmailVerificationService",
    "InMemoryOneTimeCodeStore",
    "MailDispatcher",
    "PasswordService",
    "TokenClaims",
    "TokenService",
    "build_verification_url",
    "generate_forgot_code",
]
