from sqlalchemy import Boolean, Column, Integer, String

from .base import Base, TimestampMixin
from .user import User


class UserRecord(Base, TimestampMixin):
    """Row in the ``users`` table."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    verified = Column(Boolean, default=False, nullable=False)

    def to_domain(self) -> User:
        return User(
            username=self.username,
            email=self.email,
            full_name=self.full_name,
            password_hash=self.password_hash,
            verified=self.verified,
            created_at=self.created_at,
        )

    @classmethod
    def from_domain(cls, user: User) -> "UserRecord":
        return cls(
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            password_hash=user.password_hash,
            verified=user.verified,
            created_at=user.created_at,
        )

    def apply(self, user: User) -> None:
        """Copy the mutable fields of ``user`` onto this row."""
        self.email = user.email
        self.full_name = user.full_name
        self.password_hash = user.password_hash
        self.verified = user.verified
