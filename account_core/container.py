"""
Dependency container.
Builds the collaborators the account core needs from one Settings object and
owns their startup/shutdown.
"""

from typing import Optional

import structlog

from .core.config import Settings
from .core.database import close_db_connections, create_engine_and_sessionmaker, init_models
from .core.redis import RedisOneTimeCodeStore, create_redis_client
from .core.security import PasswordHasher
from .interfaces.code_store_interface import IOneTimeCodeStore
from .interfaces.mailer_interface import IMailer
from .interfaces.repository_interface import IUserRepository
from .repositories.user_repository import InMemoryUserRepository, SQLAlchemyUserRepository
from .services.auth.code_store import InMemoryOneTimeCodeStore
from .services.auth.mail_dispatcher import MailDispatcher
from .services.auth.token_service import TokenService
from .services.auth_service import AuthService
from .services.mailers import LoggingMailer, SMTPMailer

logger = structlog.get_logger()


class Container:
    """Holds the service graph for one process."""

    def __init__(
        self,
        settings: Settings,
        user_repository: Optional[IUserRepository] = None,
        code_store: Optional[IOneTimeCodeStore] = None,
        mailer: Optional[IMailer] = None,
    ):
        self.settings = settings
        self._engine = None
        self._redis = None

        # Explicit None checks: the in-memory stores are falsy while empty
        self.user_repository = (
            user_repository if user_repository is not None else self._build_user_repository()
        )
        self.code_store = code_store if code_store is not None else self._build_code_store()
        self.mailer = mailer if mailer is not None else self._build_mailer()

        self.password_hasher = PasswordHasher.from_settings(settings)
        self.token_service = TokenService(settings)
        self.mail_dispatcher = MailDispatcher(self.mailer)
        self.auth_service = AuthService(
            settings=settings,
            user_repository=self.user_repository,
            password_hasher=self.password_hasher,
            token_service=self.token_service,
            code_store=self.code_store,
            mail_dispatcher=self.mail_dispatcher,
        )

    def _build_user_repository(self) -> IUserRepository:
        if not self.settings.DATABASE_URL:
            return InMemoryUserRepository()
        self._engine, session_factory = create_engine_and_sessionmaker(
            self.settings.DATABASE_URL, echo=self.settings.DEBUG
        )
        return SQLAlchemyUserRepository(session_factory)

    def _build_code_store(self) -> IOneTimeCodeStore:
        ttl = self.settings.FORGOT_CODE_TTL_SECONDS
        if not self.settings.REDIS_URL:
            return InMemoryOneTimeCodeStore(ttl_seconds=ttl)
        self._redis = create_redis_client(self.settings.REDIS_URL)
        return RedisOneTimeCodeStore(self._redis, ttl_seconds=ttl)

    def _build_mailer(self) -> IMailer:
        if not self.settings.SMTP_HOST:
            return LoggingMailer(sender=self.settings.mail_sender)
        return SMTPMailer.from_settings(self.settings)

    async def startup(self) -> None:
        if self._engine is not None:
            await init_models(self._engine)
        logger.info(
            "Container initialized",
            user_repository=type(self.user_repository).__name__,
            code_store=type(self.code_store).__name__,
            mailer=type(self.mailer).__name__,
        )

    async def shutdown(self) -> None:
        await self.mail_dispatcher.drain()
        if self._redis is not None:
            await self._redis.aclose()
        if self._engine is not None:
            await close_db_connections(self._engine)
        logger.info("Container shut down")
