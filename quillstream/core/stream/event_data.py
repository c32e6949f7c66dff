"""Data structures for the events flowing through a streamed answer.

Event flow for one request:

    Query service --(bytes)--> EventDecoder --(CONTENT | STATUS | COMPLETE | ERROR)-->
    StreamSession --(CHARACTER ... | STATUS)--> subscribers --> (COMPLETE | ERROR)

Event Payload Standards:

Decoded events (produced by the EventDecoder):
- CONTENT: {"text": str}           # One fragment, not yet animated
- STATUS: {"message": str}         # Progress notice from the query service
- COMPLETE: {} or {"sentinel": True}  # End of the answer
- ERROR: {"message": str}          # Error reported by the service or the transport

Published events (produced by the StreamSession for subscribers):
- CHARACTER: {"char": str}         # One typed character
- STATUS, COMPLETE, ERROR: as above
"""

import time
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum


class EventType(Enum):
    """Types of events produced while a request is streaming."""

    CONTENT = "content"        # Fragment of the answer
    CHARACTER = "character"    # Single character of the typed answer
    STATUS = "status"          # Status update, replaces the previous one
    COMPLETE = "complete"      # Terminal: the answer is complete
    ERROR = "error"            # Terminal: the request failed

    @property
    def is_terminal(self) -> bool:
        """Whether no further content may follow an event of this type."""
        return self in (EventType.COMPLETE, EventType.ERROR)


@dataclass(frozen=True)
class Event:
    """An immutable event of a streamed answer."""

    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def text(self) -> str:
        """Fragment text of a CONTENT event, character of a CHARACTER event."""
        return self.data.get("text") or self.data.get("char", "")

    @property
    def message(self) -> str:
        """Message of a STATUS or ERROR event."""
        return self.data.get("message", "")

    @classmethod
    def content(cls, text: str, request_id: Optional[str] = None) -> 'Event':
        return cls(EventType.CONTENT, {"text": text}, request_id)

    @classmethod
    def character(cls, char: str, request_id: Optional[str] = None) -> 'Event':
        return cls(EventType.CHARACTER, {"char": char}, request_id)

    @classmethod
    def status(cls, message: str, request_id: Optional[str] = None) -> 'Event':
        return cls(EventType.STATUS, {"message": message}, request_id)

    @classmethod
    def complete(cls, request_id: Optional[str] = None, sentinel: bool = False) -> 'Event':
        return cls(EventType.COMPLETE, {"sentinel": True} if sentinel else {}, request_id)

    @classmethod
    def error(cls, message: str, request_id: Optional[str] = None) -> 'Event':
        return cls(EventType.ERROR, {"message": message}, request_id)
