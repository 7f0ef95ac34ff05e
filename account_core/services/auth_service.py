"""
Facade over the decomposed authentication services.

``AuthService`` is what the HTTP layer (or any other caller) talks to. It
owns no state of its own: users live in the user store, pending codes in the
code store, and tokens are stateless.
"""

from typing import Optional

from ..core.config import Settings
from ..core.security import PasswordHasher
from ..interfaces.code_store_interface import IOneTimeCodeStore
from ..interfaces.repository_interface import IUserRepository
from ..models.user import User
from ..schemas.auth_schemas import AuthResult
from .auth.authentication_service import AuthenticationService
from .auth.email_verification_service import EmailVerificationService
from .auth.mail_dispatcher import MailDispatcher
from .auth.password_service import PasswordService
from .auth.token_service import TokenService


class AuthService:
    def __init__(
        self,
        settings: Settings,
        user_repository: IUserRepository,
        password_hasher: PasswordHasher,
        token_service: TokenService,
        code_store: IOneTimeCodeStore,
        mail_dispatcher: MailDispatcher,
    ):
        self.settings = settings
        self.user_repository = user_repository
        self.token_service = token_service
        self.code_store = code_store
        self.mail_dispatcher = mail_dispatcher

        self.authentication = AuthenticationService(
            user_repository, password_hasher, token_service, settings
        )
        self.email_verification = EmailVerificationService(
            user_repository, token_service, mail_dispatcher, settings
        )
        self.passwords = PasswordService(
            user_repository, password_hasher, code_store, mail_dispatcher, settings
        )

    async def register(
        self,
        username: Optional[str],
        password: Optional[str],
        full_name: Optional[str],
        email: Optional[str],
    ) -> AuthResult:
        return await self.authentication.register(username, password, full_name, email)

    async def login(self, username: Optional[str], password: Optional[str]) -> AuthResult:
        return await self.authentication.login(username, password)

    async def authenticate(self, token: Optional[str]) -> User:
        return await self.authentication.authenticate(token)

    async def send_verification_mail(self, current_user: User) -> None:
        await self.email_verification.send_verification_email(current_user)

    async def confirm_verification(self, token: Optional[str]) -> str:
        return await self.email_verification.verify_email(token)

    async def send_forgot_code(self, username: Optional[str]) -> None:
        await self.passwords.send_forgot_code(username)

    async def reset_password(
        self,
        username: Optional[str],
        new_password: Optional[str],
        code: Optional[str],
    ) -> None:
        await self.passwords.reset_password(username, new_password, code)
