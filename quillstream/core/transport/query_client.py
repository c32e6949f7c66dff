"""Client for the streaming query service.

Posts a :class:`QueryRequest` to the configured endpoint and exposes the
response body as a :class:`ChunkSource`.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

import aiohttp

from quillstream.config.settings import AppSettings
from quillstream.config.transport_settings import TransportSettings
from quillstream.core.logging.logging_manager import logging_manager

from .chunk_source import ChunkSource, IterableChunkSource, ResponseChunkSource
from .errors import TransportError
from .query_request import QueryRequest

if TYPE_CHECKING:
    from quillstream.core.stream.cancellation import CancellationToken

class QueryStreamClient:
    """Opens streamed answers from the query service over HTTP."""

    def __init__(self, settings: Optional[TransportSettings] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """Initialize the client.

        Args:
            settings (TransportSettings, optional): Transport settings. Defaults to
                the transport settings of the application.
            session (aiohttp.ClientSession, optional): Session to use. If None, the
                client creates its own on first use and closes it in :meth:`close`.
        """
        self.settings = settings or AppSettings.get_instance().transport
        self.logger = logging_manager.get_session(self.__class__.__name__)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=None,
                                            connect=self.settings.connect_timeout,
                                            sock_read=self.settings.read_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _post(self, request: QueryRequest) -> aiohttp.ClientResponse:
        session = self._get_session()
        return await session.post(self.settings.endpoint,
                                  json=request.to_payload(),
                                  headers={"Accept": "text/event-stream"})

    @asynccontextmanager
    async def open_stream(self, request: QueryRequest,
                          token: Optional["CancellationToken"] = None) -> AsyncIterator[ChunkSource]:
        """Send the request and yield a chunk source over the response body.

        A request whose token is cancelled before the response arrives
        yields an empty source.

        Args:
            request (QueryRequest): The query to send.
            token (CancellationToken, optional): Token of the request.

        Yields:
            ChunkSource: The response body.

        Raises:
            TransportError: If the service cannot be reached or answers with a non-2xx status.
        """
        if token is not None and token.is_cancelled:
            yield IterableChunkSource(())
            return

        self.logger.debug(f"Posting query to {self.settings.endpoint}")
        post = self._post(request)
        try:
            if token is not None:
                response = await token.run_until_cancelled(post)
            else:
                response = await post
        except asyncio.TimeoutError as e:
            self.logger.error(f"Timed out connecting to {self.settings.endpoint}")
            raise TransportError("Timed out connecting to the query service") from e
        except aiohttp.ClientError as e:
            self.logger.error(f"Connection to {self.settings.endpoint} failed: {e}")
            raise TransportError(f"Connection failed: {e}") from e

        if response is None:
            self.logger.debug("Request cancelled before the response arrived")
            yield IterableChunkSource(())
            return

        source = ResponseChunkSource(response)
        try:
            if not 200 <= response.status < 300:
                self.logger.error(f"Query service answered with status {response.status}")
                raise TransportError(f"HTTP error! status: {response.status}", status=response.status)
            yield source
        finally:
            await source.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
