"""Errors raised by the transport layer."""

from typing import Optional


class TransportError(ConnectionError):
    """The query service could not be reached or its stream broke off.

    Attributes:
        status (int, optional): HTTP status of the response, if one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
