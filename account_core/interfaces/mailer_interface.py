"""
Outbound mail contract.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IMailer(Protocol):
    """Protocol for delivering a plain-text email."""

    async def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver one message.

        Args:
            to: Recipient address
            subject: Subject line
            body: Plain-text body

        Raises:
            Exception: Any delivery failure; callers in the core log it and
                never surface it to the requester.
        """
        ...
