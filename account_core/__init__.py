"""
Credential-and-session core of an account service: password hashing,
access and verification tokens, email verification and one-time-code
password reset.
"""

from .core.config import Settings
from .core.exceptions import AuthError
from .services.auth_service import AuthService

__version__ = "0.1.0"

__all__ = ["AuthError", "AuthService", "Settings", "__version__"]
