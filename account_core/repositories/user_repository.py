"""
User repository implementations following the Repository pattern.
Both hand out detached copies, so mutating a returned User never changes
stored state until ``save`` is called.
"""

from typing import Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.future import select
import structlog

from ..core.exceptions import AlreadyVerifiedError, ConflictError, NotFoundError
from ..interfaces.repository_interface import IUserRepository
from ..models.user import User
from ..models.user_record import UserRecord

logger = structlog.get_logger()


class InMemoryUserRepository(IUserRepository):
    """Dictionary-backed user store for development and tests."""

    def __init__(self):
        self._users: Dict[str, User] = {}

    async def find_by_username(self, username: str) -> Optional[User]:
        user = self._users.get(username)
        return user.model_copy(deep=True) if user else None

    async def create(self, user: User) -> User:
        if user.username in self._users:
            raise ConflictError()
        self._users[user.username] = user.model_copy(deep=True)
        logger.info("User created", username=user.username)
        return user.model_copy(deep=True)

    async def save(self, user: User) -> None:
        if user.username not in self._users:
            raise NotFoundError()
        self._users[user.username] = user.model_copy(deep=True)

    async def mark_verified(self, username: str) -> None:
        user = self._users.get(username)
        if user is None:
            raise NotFoundError()
        if user.verified:
            raise AlreadyVerifiedError()
        user.mark_verified()

    def __len__(self) -> int:
        return len(self._users)


class SQLAlchemyUserRepository(IUserRepository):
    """User store on top of an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def find_by_username(self, username: str) -> Optional[User]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserRecord).where(UserRecord.username == username)
            )
            record = result.scalar_one_or_none()
            return record.to_domain() if record else None

    async def create(self, user: User) -> User:
        async with self.session_factory() as session:
            record = UserRecord.from_domain(user)
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError()
            await session.refresh(record)
            logger.info("User created", username=user.username)
            return record.to_domain()

    async def save(self, user: User) -> None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserRecord).where(UserRecord.username == user.username)
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise NotFoundError()
            record.apply(user)
            await session.commit()

    async def mark_verified(self, username: str) -> None:
        """Updates only an unverified row; a second caller matches zero rows."""
        async with self.session_factory() as session:
            result = await session.execute(
                update(UserRecord)
                .where(UserRecord.username == username, UserRecord.verified.is_(False))
                .values(verified=True)
            )
            await session.commit()
            if result.rowcount == 1:
                return

            existing = await session.execute(
                select(UserRecord.id).where(UserRecord.username == username)
            )
            if existing.scalar_one_or_none() is None:
                raise NotFoundError()
            raise AlreadyVerifiedError()
