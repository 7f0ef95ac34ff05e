from typing import List, Optional, Tuple
import re

from passlib.context import CryptContext
import structlog

from .config import Settings

logger = structlog.get_logger()


class PasswordHasher:
    """
    One-way password hashing backed by passlib.

    The salt is generated per call and embedded in the digest, so two hashes
    of the same password differ. Verification uses passlib's constant-time
    comparison.
    """

    def __init__(self, scheme: str = "bcrypt", rounds: Optional[int] = None):
        options = {}
        if rounds is not None:
            options[f"{scheme}__rounds"] = rounds
        self._context = CryptContext(schemes=[scheme], deprecated="auto", **options)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(scheme=settings.PASSWORD_HASH_SCHEME, rounds=settings.PASSWORD_HASH_ROUNDS)

    def hash(self, password: str) -> str:
        """Generate password hash"""
        if not isinstance(password, str):
            raise TypeError("password must be a string")
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify a password against its hash; malformed hashes never match"""
        if not password or not hashed_password:
            return False
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning("Password hash could not be verified", error=str(e))
            return False


def validate_password_strength(password: str, settings: Settings) -> Tuple[bool, List[str]]:
    """Validate password meets the configured policy"""
    errors = []

    if len(password) < settings.PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")

    if len(password.encode("utf-8")) > settings.PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be at most {settings.PASSWORD_MAX_LENGTH} bytes")

    if settings.PASSWORD_REQUIRE_UPPERCASE and not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if settings.PASSWORD_REQUIRE_LOWERCASE and not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if settings.PASSWORD_REQUIRE_NUMBERS and not re.search(r"\d", password):
        errors.append("Password must contain at least one number")

    if settings.PASSWORD_REQUIRE_SPECIAL and not re.search(r"[!@#$%^&*(),.?\":{}|<>]", password):
        errors.append("Password must contain at least one special character")

    common_passwords = ["password", "123456", "admin", "letmein", "welcome"]
    if password.lower() in common_passwords:
        errors.append("Password is too common")

    return len(errors) == 0, errors
