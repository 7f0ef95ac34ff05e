"""
One-time code store contract used by the forgot-password flow.
"""

from typing import AsyncContextManager, Optional, Protocol, runtime_checkable


@runtime_checkable
class IOneTimeCodeStore(Protocol):
    """Protocol for a keyed store holding at most one pending code per username."""

    async def put(self, username: str, code: str) -> None:
        """
        Store a code, replacing any pending code for the username.

        Waits for any operation holding ``locked(username)`` to finish.
        """
        ...

    async def get(self, username: str) -> Optional[str]:
        """
        Return the pending code without consuming it.

        Returns:
            The code, or None when nothing is pending (or it has expired)
        """
        ...

    async def remove(self, username: str) -> None:
        """Consume the pending code. Removing an absent code is a no-op."""
        ...

    def locked(self, username: str) -> AsyncContextManager[None]:
        """
        Exclusive access to one username's entry.

        ``get`` and ``remove`` inside this block are atomic with respect to
        concurrent ``put`` calls and other holders of the same lock.

        Raises:
            CodeStoreBusyError: A shared store could not take the lock in time
        """
        ...
