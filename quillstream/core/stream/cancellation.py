"""Cancellation token shared by the stages of one request.

The token is set once by an explicit caller action and never reset. The
decoder read loop, the typing scheduler and the session all hold a
reference to the same token and check it at each of their suspension
points.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

class CancellationToken:
    """One-shot cooperative cancellation flag.

    Callbacks registered with :meth:`add_callback` run exactly once when the
    token is cancelled, in registration order.
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[[], None]] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def is_cancelled(self) -> bool:
        """Whether the token has been cancelled."""
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        """Reason given to the first :meth:`cancel` call, if any."""
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Cancel the token.

        Calling it again has no further effect.

        Args:
            reason (str, optional): Why the request was cancelled, for logging.

        Returns:
            bool: True if this call cancelled the token, False if it was already cancelled.
        """
        if self._cancelled:
            return False

        self._cancelled = True
        self._reason = reason
        logger.debug(f"Cancellation requested{f': {reason}' if reason else ''}")

        if self._event is not None:
            self._event.set()

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._run_callback(callback)
        return True

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to run on cancellation.

        The callback runs immediately if the token is already cancelled.

        Args:
            callback (Callable[[], None]): Function to call once on cancellation.
        """
        if self._cancelled:
            self._run_callback(callback)
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback that has not run yet."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def run_until_cancelled(self, awaitable: Awaitable[T], default: Optional[T] = None) -> Optional[T]:
        """Await an operation, abandoning it as soon as the token is cancelled.

        Args:
            awaitable (Awaitable): The operation to await.
            default: Returned when the operation was abandoned.

        Returns:
            The result of the operation if it finished, ``default`` otherwise.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return default

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task.cancelled():
            return default
        return task.result()

    def raise_if_cancelled(self) -> None:
        """Raise ``asyncio.CancelledError`` if the token is cancelled."""
        if self._cancelled:
            raise asyncio.CancelledError(self._reason)

    @staticmethod
    def _run_callback(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in cancellation callback: {e}")

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {state}>"
