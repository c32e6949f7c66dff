"""Chunk sources feeding the event decoder."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterable, Iterable, Optional, Union

import aiohttp

from .errors import TransportError

logger = logging.getLogger(__name__)

class ChunkSource(ABC):
    """Pull-based source of raw body chunks."""

    @abstractmethod
    async def read(self) -> Optional[bytes]:
        """Read the next chunk.

        Returns:
            Optional[bytes]: The next chunk, or None at the end of the body.
        """
        pass

    async def close(self) -> None:
        """Release the underlying resources. Does nothing by default."""


class IterableChunkSource(ChunkSource):
    """Reads chunks from a plain or asynchronous iterable.

    Text chunks are encoded as UTF-8.
    """

    def __init__(self, chunks: Union[Iterable[Union[bytes, str]], AsyncIterable[Union[bytes, str]]]):
        if hasattr(chunks, "__aiter__"):
            self._aiterator = chunks.__aiter__()
            self._iterator = None
        else:
            self._aiterator = None
            self._iterator = iter(chunks)
        self._exhausted = False

    async def read(self) -> Optional[bytes]:
        if self._exhausted:
            return None
        try:
            if self._aiterator is not None:
                chunk = await self._aiterator.__anext__()
            else:
                chunk = next(self._iterator)
        except (StopIteration, StopAsyncIteration):
            self._exhausted = True
            return None
        return chunk.encode("utf-8") if isinstance(chunk, str) else chunk

    async def close(self) -> None:
        self._exhausted = True
        aclose = getattr(self._aiterator, "aclose", None)
        if aclose is not None:
            await aclose()


class ResponseChunkSource(ChunkSource):
    """Reads the body of an aiohttp response as it arrives."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response

    @property
    def response(self) -> aiohttp.ClientResponse:
        return self._response

    async def read(self) -> Optional[bytes]:
        try:
            chunk = await self._response.content.readany()
        except asyncio.TimeoutError as e:
            logger.error("Timed out waiting for the next chunk of the stream")
            raise TransportError("Timed out waiting for the stream") from e
        except aiohttp.ClientError as e:
            logger.error(f"Stream interrupted: {e}")
            raise TransportError(f"Stream interrupted: {e}") from e
        return chunk or None

    async def close(self) -> None:
        """Close the response, dropping the connection if the body was not fully read."""
        if self._response.content.at_eof():
            self._response.release()
        else:
            self._response.close()
