"""Entry point for streaming the answers of one conversation.

The orchestrator creates a :class:`StreamSession` per request and makes
sure that at most one of them is streaming at any time: starting a new
request cancels the one still in flight.
"""

import random
import uuid
from typing import Awaitable, Callable, Optional

from quillstream.config.settings import AppSettings
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.core.transport.query_client import QueryStreamClient
from quillstream.core.transport.query_request import QueryRequest

from .cancellation import CancellationToken
from .event_publisher import EventPublisher
from .event_subscriber import EventSubscriber
from .stream_session import SessionOutcome, SessionState, StreamSession


class StreamOrchestrator:
    """Streams the answers of a conversation to the subscribers.

    Subscribers receive one CHARACTER event per typed character, STATUS
    events as they arrive, and then either COMPLETE or ERROR once per
    request. A cancelled request ends silently.
    """

    def __init__(self,
                 settings: Optional[AppSettings] = None,
                 client=None,
                 publisher: Optional[EventPublisher] = None,
                 session_id: Optional[str] = None,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 rng: Optional[random.Random] = None):
        """Initialize the orchestrator.

        Args:
            settings (AppSettings, optional): Application settings. Defaults to the singleton.
            client (optional): Transport client. Defaults to a :class:`QueryStreamClient`.
            publisher (EventPublisher, optional): Publisher shared with the subscribers.
            session_id (str, optional): ID of the conversation. A new one is generated if None.
            sleep (Callable, optional): Coroutine used by the typing animation to wait.
            rng (random.Random, optional): Random source of the typing jitter.
        """
        self.settings = settings or AppSettings.get_instance()
        self.client = client or QueryStreamClient(self.settings.transport)
        self.publisher = publisher or EventPublisher()
        self.session_id = session_id or str(uuid.uuid4())
        self.logger = logging_manager.get_session(self.__class__.__name__)

        self._sleep = sleep
        self._rng = rng
        self._active_session: Optional[StreamSession] = None

    @property
    def active_session(self) -> Optional[StreamSession]:
        return self._active_session

    @property
    def is_streaming(self) -> bool:
        return (self._active_session is not None
                and self._active_session.state is SessionState.STREAMING)

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self.publisher.subscribe(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        self.publisher.unsubscribe(subscriber)

    def create_request(self, query: str, **fields) -> QueryRequest:
        """Build a request carrying the configured routing fields.

        Args:
            query (str): The question to ask.
            **fields: Overrides for any other field of :class:`QueryRequest`.

        Returns:
            QueryRequest: The request.
        """
        transport = self.settings.transport
        values = {
            "tenant_id": transport.tenant_id,
            "api_key": transport.api_key,
            "project_id": transport.project_id,
            "provider": transport.provider,
            "model": transport.model,
            "session_id": self.session_id,
        }
        values.update(fields)
        return QueryRequest(query=query, **values)

    async def run(self, request: QueryRequest, token: Optional[CancellationToken] = None) -> SessionOutcome:
        """Stream the answer to a request.

        A request still streaming is cancelled first.

        Args:
            request (QueryRequest): The request to stream.
            token (CancellationToken, optional): Token the caller can use to cancel the request.

        Returns:
            SessionOutcome: How the request ended.
        """
        self.cancel_current_request("superseded by a new request")

        session = StreamSession(request,
                                self.client,
                                self.publisher,
                                request_id=str(uuid.uuid4()),
                                token=token,
                                typing_settings=self.settings.typing,
                                sleep=self._sleep,
                                rng=self._rng)
        self._active_session = session
        try:
            outcome = await session.run()
            self.logger.debug(f"Request {session.request_id} ended: {outcome.state.value}")
            return outcome
        finally:
            if self._active_session is session:
                self._active_session = None

    def cancel_current_request(self, reason: Optional[str] = "cancelled by user") -> bool:
        """Cancel the request currently streaming, if any.

        Returns:
            bool: True if a request was cancelled.
        """
        session = self._active_session
        if session is None or not session.cancel(reason):
            return False
        self.logger.info(f"Cancelled request {session.request_id}")
        return True

    async def close(self) -> None:
        """Cancel the current request and release the transport."""
        self.cancel_current_request("orchestrator closed")
        await self.client.close()
