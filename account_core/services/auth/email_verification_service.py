"""
Email verification service focused solely on email verification operations.

State machine per user: unverified -> verified. The transition happens once;
confirming an already verified account fails instead of succeeding quietly.
"""

from typing import Optional
from urllib.parse import urlencode, urlunsplit

import structlog

from ...core.config import Settings
from ...core.exceptions import (
    AlreadyVerifiedError,
    InvalidTokenPurposeError,
    MissingTokenError,
    NotFoundError,
)
from ...interfaces.repository_interface import IUserRepository
from ...models.user import User
from .mail_dispatcher import MailDispatcher
from .token_service import TokenService

logger = structlog.get_logger()

VERIFICATION_SUBJECT = "verification mail"


def build_verification_url(settings: Settings, token: str) -> str:
    """
    Link delivered in the verification mail.
    A configured DOMAIN replaces host and port; otherwise HOST:PORT is used.
    """
    netloc = settings.DOMAIN if settings.DOMAIN else f"{settings.HOST}:{settings.PORT}"
    path = f"{settings.API_V1_STR}/auth/verify"
    return urlunsplit((settings.PUBLIC_SCHEME, netloc, path, urlencode({"token": token}), ""))


class EmailVerificationService:
    """Service responsible for email verification operations."""

    def __init__(
        self,
        user_repository: IUserRepository,
        token_service: TokenService,
        mail_dispatcher: MailDispatcher,
        settings: Settings,
    ):
        self.user_repository = user_repository
        self.token_service = token_service
        self.mail_dispatcher = mail_dispatcher
        self.settings = settings

    async def send_verification_email(self, current_user: User) -> None:
        """
        Mail a verification link to the current user.

        Returns as soon as the send is scheduled; delivery problems are
        only logged.

        Raises:
            AlreadyVerifiedError: The account is already verified
            NotFoundError: The account no longer exists
        """
        if current_user.verified:
            raise AlreadyVerifiedError()

        user = await self.user_repository.find_by_username(current_user.username)
        if not user:
            raise NotFoundError()
        if user.verified:
            raise AlreadyVerifiedError()

        verification_token = self.token_service.issue_verification(user.username)
        verification_url = build_verification_url(self.settings, verification_token)

        self.mail_dispatcher.dispatch(user.email, VERIFICATION_SUBJECT, verification_url)
        logger.info("Email verification requested", username=user.username)

    async def verify_email(self, token: Optional[str]) -> str:
        """
        Confirm a verification token and return a fresh access token.

        Raises:
            MissingTokenError: No token supplied
            InvalidTokenError: Bad signature or malformed token
            ExpiredTokenError: Token expired
            InvalidTokenPurposeError: Token lacks the verification marker
            NotFoundError: The claimed user does not exist
            AlreadyVerifiedError: The account was verified before
        """
        if not token:
            raise MissingTokenError()

        claims = self.token_service.verify(token)
        if not claims.verify:
            logger.info("Verification rejected", reason="wrong_token_purpose")
            raise InvalidTokenPurposeError()

        # The store flips the flag atomically, across workers for SQL stores.
        await self.user_repository.mark_verified(claims.username)

        logger.info("Email verified successfully", username=claims.username)
        return self.token_service.issue_access(claims.username)
