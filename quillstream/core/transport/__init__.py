"""Transport to the streaming query service.

This package sends queries over HTTP and hands the streamed response
body to the event decoder as raw chunks.
"""
from .errors import TransportError
from .query_request import QueryRequest
from .chunk_source import ChunkSource, IterableChunkSource, ResponseChunkSource
from .query_client import QueryStreamClient

__all__ = [
    "TransportError",
    "QueryRequest",
    "ChunkSource",
    "IterableChunkSource",
    "ResponseChunkSource",
    "QueryStreamClient"
]
