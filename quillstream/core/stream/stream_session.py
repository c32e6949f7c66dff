"""State machine driving one streamed request.

A session reads the decoded events of one request, feeds the content into
a typing scheduler and decides how the request ends. It ends exactly once:
completed, errored or cancelled. Subscribers see COMPLETE or ERROR for the
first two and nothing at all for a cancellation.
"""

import asyncio
import random
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from quillstream.config.typing_settings import TypingSettings
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.core.transport.errors import TransportError
from quillstream.core.transport.query_request import QueryRequest

from .cancellation import CancellationToken
from .event_data import Event, EventType
from .event_decoder import EventDecoder
from .event_publisher import EventPublisher
from .typing_scheduler import TypingScheduler


class SessionState(Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (SessionState.IDLE, SessionState.STREAMING)


@dataclass(frozen=True)
class SessionOutcome:
    """How a request ended."""

    state: SessionState
    reason: Optional[str] = None

    @classmethod
    def completed(cls) -> 'SessionOutcome':
        return cls(SessionState.COMPLETED)

    @classmethod
    def errored(cls, reason: str) -> 'SessionOutcome':
        return cls(SessionState.ERRORED, reason)

    @classmethod
    def cancelled(cls, reason: Optional[str] = None) -> 'SessionOutcome':
        return cls(SessionState.CANCELLED, reason)

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def is_errored(self) -> bool:
        return self.state is SessionState.ERRORED

    @property
    def is_cancelled(self) -> bool:
        return self.state is SessionState.CANCELLED


class StreamSession:
    """Runs a single request from the first read to its terminal event."""

    def __init__(self,
                 request: QueryRequest,
                 client,
                 publisher: EventPublisher,
                 request_id: str,
                 token: Optional[CancellationToken] = None,
                 typing_settings: Optional[TypingSettings] = None,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 rng: Optional[random.Random] = None):
        """Initialize the session.

        Args:
            request (QueryRequest): The query to stream.
            client: Object whose ``open_stream(request, token)`` async context
                manager yields the chunk source of the response.
            publisher (EventPublisher): Publisher the typed answer is sent to.
            request_id (str): ID attached to every published event.
            token (CancellationToken, optional): Token of the request. A new one is created if None.
            typing_settings (TypingSettings, optional): Pace of the typing animation.
            sleep (Callable, optional): Coroutine used by the typing animation to wait.
            rng (random.Random, optional): Random source of the typing jitter.
        """
        self.request = request
        self.request_id = request_id
        self.token = token or CancellationToken()
        self.logger = logging_manager.get_session(self.__class__.__name__)

        self._client = client
        self._publisher = publisher
        self._typing_settings = typing_settings or TypingSettings()
        self._scheduler_options = {}
        if sleep is not None:
            self._scheduler_options["sleep"] = sleep
        if rng is not None:
            self._scheduler_options["rng"] = rng

        self._state = SessionState.IDLE
        self._outcome: Optional[SessionOutcome] = None
        self._scheduler: Optional[TypingScheduler] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        """How the request ended, or None while it is still running."""
        return self._outcome

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Cancel the request. Has no effect once the request has ended."""
        if self._state.is_terminal:
            return False
        return self.token.cancel(reason)

    async def run(self) -> SessionOutcome:
        """Stream the request until it completes, fails or is cancelled.

        Returns:
            SessionOutcome: How the request ended.

        Raises:
            RuntimeError: If the session has already been run.
            asyncio.CancelledError: If the task running the session is cancelled.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError("A stream session can only be run once")

        self._state = SessionState.STREAMING
        self._scheduler = TypingScheduler.from_settings(
            self._emit_character, self._typing_settings, token=self.token, **self._scheduler_options
        )
        self.logger.debug(f"Request {self.request_id} started")

        try:
            async with self._client.open_stream(self.request, self.token) as source:
                decoder = EventDecoder(source, self.token, request_id=self.request_id)
                async with aclosing(aiter(decoder)) as events:
                    async for event in events:
                        if self.token.is_cancelled or not await self._dispatch(event):
                            break

            if self._state is SessionState.STREAMING:
                await self._scheduler.flush()
                self._complete()
        except asyncio.CancelledError:
            self.token.cancel("task cancelled")
            self._cancelled()
            raise
        except TransportError as e:
            if self.token.is_cancelled:
                self.logger.debug(f"Ignoring transport error after cancellation: {e}")
            else:
                await self._fail(str(e))
        except Exception as e:
            self.logger.error(f"Unexpected error while streaming request {self.request_id}: {e}")
            await self._fail(str(e) or type(e).__name__)
            raise
        finally:
            await self._scheduler.close()
            if self.token.is_cancelled:
                self._cancelled()

        return self._outcome

    async def _dispatch(self, event: Event) -> bool:
        """Handle one decoded event. Returns False once the stream must stop."""
        if event.type == EventType.CONTENT:
            self._scheduler.enqueue(event.text)
        elif event.type == EventType.STATUS:
            self._publisher.publish_event(event)
        elif event.type == EventType.COMPLETE:
            return False
        elif event.type == EventType.ERROR:
            await self._fail(event.message)
            return False
        return True

    def _emit_character(self, char: str) -> None:
        self._publisher.publish_event(Event.character(char, self.request_id))

    def _complete(self) -> None:
        if self.token.is_cancelled:
            self._cancelled()
            return
        self._finish(SessionOutcome.completed())
        self._publisher.publish_event(Event.complete(self.request_id))

    async def _fail(self, message: str) -> None:
        if self._state.is_terminal:
            return
        self._finish(SessionOutcome.errored(message))
        await self._scheduler.close()
        self.logger.error(f"Request {self.request_id} failed: {message}")
        self._publisher.publish_event(Event.error(message, self.request_id))

    def _cancelled(self) -> None:
        if self._finish(SessionOutcome.cancelled(self.token.reason)):
            self.logger.debug(f"Request {self.request_id} cancelled")

    def _finish(self, outcome: SessionOutcome) -> bool:
        """Record the outcome unless one was recorded already."""
        if self._state.is_terminal:
            return False
        self._outcome = outcome
        self._state = outcome.state
        return True
