"""
Fire-and-forget mail dispatch.

The caller's result is never contingent on delivery: ``dispatch`` schedules
the send as a detached task and returns immediately. Failures are logged and
never re-raised. Pending sends are tracked so they are not garbage collected
mid-flight and can be awaited at shutdown with ``drain``.
"""

from typing import Set
import asyncio

import structlog

from ...interfaces.mailer_interface import IMailer

logger = structlog.get_logger()


class MailDispatcher:
    """Schedules best-effort mail sends on the running event loop."""

    def __init__(self, mailer: IMailer):
        self.mailer = mailer
        self._pending: Set[asyncio.Task] = set()

    def dispatch(self, to: str, subject: str, body: str) -> asyncio.Task:
        task = asyncio.create_task(self._send(to, subject, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(self, to: str, subject: str, body: str) -> bool:
        try:
            await self.mailer.send(to, subject, body)
            return True
        except asyncio.CancelledError:
            logger.warning("Mail send cancelled", subject=subject)
            raise
        except Exception as e:
            logger.error("Mail send failed", subject=subject, error=str(e))
            return False

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every outstanding send to finish."""
        if not self._pending:
            return
        logger.info("Draining pending mail", count=len(self._pending))
        await asyncio.gather(*list(self._pending), return_exceptions=True)
