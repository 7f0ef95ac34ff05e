"""
Password service focused on the forgot-password handshake.

A verified user requests a six digit code by mail, then trades it together
with a new password. Codes are single use: a successful reset consumes the
code, a failed attempt leaves it pending for a retry, and a newer request
replaces any older code.
"""

from typing import Optional
import secrets

import structlog

from ...core.config import Settings
from ...core.exceptions import InvalidCodeError, NotFoundError, NotVerifiedError
from ...core.security import PasswordHasher
from ...interfaces.code_store_interface import IOneTimeCodeStore
from ...interfaces.repository_interface import IUserRepository
from .helpers import ensure_password_policy, require_parameters
from .mail_dispatcher import MailDispatcher

logger = structlog.get_logger()

FORGOT_SUBJECT = "change password"
CODE_MIN = 100000
CODE_MAX = 999999


def generate_forgot_code() -> str:
    """Uniform random code in [100000, 999999]."""
    return str(secrets.randbelow(CODE_MAX - CODE_MIN + 1) + CODE_MIN)


def codes_match(expected: str, supplied: str) -> bool:
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


class PasswordService:
    """Service responsible for password reset operations."""

    def __init__(
        self,
        user_repository: IUserRepository,
        password_hasher: PasswordHasher,
        code_store: IOneTimeCodeStore,
        mail_dispatcher: MailDispatcher,
        settings: Settings,
    ):
        self.user_repository = user_repository
        self.password_hasher = password_hasher
        self.code_store = code_store
        self.mail_dispatcher = mail_dispatcher
        self.settings = settings

    async def send_forgot_code(self, username: Optional[str]) -> None:
        """
        Issue a reset code and mail it to the account's address.

        Raises:
            MissingParametersError: username absent
            NotFoundError: No such username
            NotVerifiedError: Reset requires a verified email address
        """
        require_parameters(username=username)

        user = await self.user_repository.find_by_username(username)
        if not user:
            raise NotFoundError()
        if not user.verified:
            raise NotVerifiedError()

        code = generate_forgot_code()
        await self.code_store.put(user.username, code)

        self.mail_dispatcher.dispatch(user.email, FORGOT_SUBJECT, f"your code: {code}")
        logger.info("Password reset code issued", username=user.username)

    async def reset_password(
        self,
        username: Optional[str],
        new_password: Optional[str],
        code: Optional[str],
    ) -> None:
        """
        Replace the password if ``code`` matches the pending code.

        Everything from reading the pending code to removing it runs under
        the code store's per-username lock, so one code cannot be spent twice.

        Raises:
            MissingParametersError: Any argument absent
            NotFoundError: No such username
            InvalidCodeError: Code does not match, or nothing is pending
            ValidationError: New password violates the password policy
        """
        require_parameters(username=username, new_password=new_password, forgot_code=code)

        async with self.code_store.locked(username):
            user = await self.user_repository.find_by_username(username)
            if not user:
                raise NotFoundError()

            pending = await self.code_store.get(username)
            if pending is None or not codes_match(pending, str(code)):
                logger.info("Password reset rejected", reason="invalid_code", username=username)
                raise InvalidCodeError()

            ensure_password_policy(new_password, self.settings, field="new_password")

            user.set_password_hash(self.password_hasher.hash(new_password))
            await self.user_repository.save(user)
            await self.code_store.remove(username)

        logger.info("Password reset completed successfully", username=username)
