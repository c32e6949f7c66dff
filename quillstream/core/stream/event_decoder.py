"""Incremental decoder for event-delimited response bodies.

The query service answers with a body made of lines of the form
``data: <json>``. The literal payload ``[DONE]`` marks the end of the
answer; every other line is ignored. The decoder turns the raw byte
chunks of such a body into :class:`Event` objects, one at a time, as the
chunks arrive.
"""

import codecs
import json
import logging

from typing import Any, AsyncIterator, Dict, Optional

from quillstream.core.transport.chunk_source import ChunkSource

from .cancellation import CancellationToken
from .event_data import Event

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class EventDecoder:
    """Turns a :class:`ChunkSource` into an async iterator of events.

    The iterator is lazy and can only be consumed once. It ends after the
    first COMPLETE or ERROR event, at the end of the body, or as soon as
    the cancellation token is observed.
    """

    def __init__(self, source: ChunkSource, token: Optional[CancellationToken] = None,
                 encoding: str = "utf-8", request_id: Optional[str] = None):
        """Initialize the decoder.

        Args:
            source (ChunkSource): Where the raw chunks are read from.
            token (CancellationToken, optional): Token observed at every read.
            encoding (str): Text encoding of the body. Defaults to "utf-8".
            request_id (str, optional): ID attached to every decoded event.
        """
        self._source = source
        self._token = token
        self._encoding = encoding
        self._request_id = request_id
        self._started = False

    def __aiter__(self) -> AsyncIterator[Event]:
        if self._started:
            raise RuntimeError("EventDecoder can only be iterated once")
        self._started = True
        return self._events()

    @property
    def cancelled(self) -> bool:
        return self._token is not None and self._token.is_cancelled

    async def _events(self) -> AsyncIterator[Event]:
        text_decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        buffer = ""

        while not self.cancelled:
            chunk = await self._read_chunk()
            if chunk is None:
                break

            buffer += text_decoder.decode(chunk)
            *lines, buffer = buffer.split("\n")

            for line in lines:
                if self.cancelled:
                    return
                event = self.decode_line(line, self._request_id)
                if event is None:
                    continue
                yield event
                if event.type.is_terminal:
                    return

        if buffer and not self.cancelled:
            logger.debug(f"Discarding incomplete trailing line: {buffer!r}")

    async def _read_chunk(self) -> Optional[bytes]:
        """Read one chunk, giving up as soon as the token is cancelled."""
        if self._token is None:
            return await self._source.read()

        chunk = await self._token.run_until_cancelled(self._source.read())
        if self._token.is_cancelled:
            logger.debug("Read abandoned after cancellation")
            return None
        return chunk

    @staticmethod
    def decode_line(line: str, request_id: Optional[str] = None) -> Optional[Event]:
        """Decode a single line of the body.

        Args:
            line (str): The line, without its trailing newline.
            request_id (str, optional): ID attached to the resulting event.

        Returns:
            Optional[Event]: The decoded event, or None if the line carries none.
        """
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):]
        if payload.strip() == DONE_SENTINEL:
            return Event.complete(request_id, sentinel=True)

        try:
            data = json.loads(payload)
        except ValueError as e:
            logger.debug(f"Skipping malformed payload {payload!r}: {e}")
            return None

        if not isinstance(data, dict):
            logger.debug(f"Skipping non-object payload {payload!r}")
            return None

        return EventDecoder.decode_payload(data, request_id)

    @staticmethod
    def decode_payload(data: Dict[str, Any], request_id: Optional[str] = None) -> Optional[Event]:
        """Map a parsed payload to an event. The first matching rule wins."""
        chunk = data.get("chunk")
        if isinstance(chunk, str) and chunk:
            return Event.content(chunk, request_id)

        kind = data.get("type")
        message = data.get("message")
        if kind == "status" and message:
            return Event.status(str(message), request_id)

        if kind == "complete":
            return Event.complete(request_id)

        error = data.get("error")
        if error:
            if isinstance(error, dict) and "message" in error:
                return Event.error(str(error["message"]), request_id)
            return Event.error(str(error), request_id)

        logger.debug(f"Ignoring payload without a known event: {data}")
        return None
