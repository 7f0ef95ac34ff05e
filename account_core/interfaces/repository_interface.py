"""
User store contract.

The store is the single source of truth for user state; callers must not
hold on to returned records across requests.
"""

from typing import Optional, Protocol, runtime_checkable

from ..models.user import User


@runtime_checkable
class IUserRepository(Protocol):
    """Protocol for user store operations."""

    async def find_by_username(self, username: str) -> Optional[User]:
        """
        Get user by username.

        Args:
            username: Unique username

        Returns:
            User instance or None if not found
        """
        ...

    async def create(self, user: User) -> User:
        """
        Persist a new user.

        Args:
            user: Fully populated user record (password already hashed)

        Returns:
            Created user instance

        Raises:
            ConflictError: If the username is already taken
        """
        ...

    async def save(self, user: User) -> None:
        """
        Persist changes to an existing user.

        Args:
            user: User record carrying the new field values

        Raises:
            NotFoundError: If the user no longer exists
        """
        ...

    async def mark_verified(self, username: str) -> None:
        """
        Flip ``verified`` from false to true in one atomic step.

        Args:
            username: Unique username

        Raises:
            NotFoundError: If the user does not exist
            AlreadyVerifiedError: If the user was verified already
        """
        ...
