"""
Token service focused solely on JWT token operations.
Signs and verifies access tokens and email-verification tokens with the
process-wide secret. Tokens are stateless: expiry is the only invalidation.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import secrets

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError
import structlog

from ...core.config import Settings
from ...core.exceptions import ExpiredTokenError, InvalidTokenError

logger = structlog.get_logger()


class TokenClaims(BaseModel):
    """Decoded payload of a signed token."""

    username: str
    exp: int
    iat: Optional[int] = None
    jti: Optional[str] = None
    verify: bool = False


class TokenService:
    """Service responsible for JWT token operations."""

    def __init__(self, settings: Settings):
        self._secret = settings.SECRET_KEY
        self._algorithm = settings.ALGORITHM
        self.access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.verification_ttl = timedelta(minutes=settings.VERIFICATION_TOKEN_EXPIRE_MINUTES)

    def issue_access(self, username: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create access token.

        Args:
            username: Subject of the token
            expires_delta: Custom lifetime, defaults to the configured access TTL

        Returns:
            Signed JWT
        """
        token = self._encode({"username": username}, expires_delta or self.access_ttl)
        logger.debug("Access token issued", username=username)
        return token

    def issue_verification(self, username: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create email verification token.

        Carries ``verify: true`` so it can never be mistaken for an access
        token and vice versa.
        """
        token = self._encode(
            {"username": username, "verify": True},
            expires_delta or self.verification_ttl,
        )
        logger.debug("Verification token issued", username=username)
        return token

    def verify(self, token: str) -> TokenClaims:
        """
        Validate signature and expiry and return the claims.

        Raises:
            ExpiredTokenError: The token was valid but its expiry has passed
            InvalidTokenError: Bad signature, malformed token or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require_exp": True},
            )
        except ExpiredSignatureError:
            raise ExpiredTokenError()
        except JWTError as e:
            logger.debug("Token validation failed", error=str(e))
            raise InvalidTokenError()

        try:
            return TokenClaims.model_validate(payload)
        except PydanticValidationError:
            raise InvalidTokenError("token claims are malformed")

    def _encode(self, claims: Dict[str, Any], lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "iat": now,
            "exp": now + lifetime,
            "jti": secrets.token_urlsafe(16),
        })
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)
