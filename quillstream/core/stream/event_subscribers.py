"""Ready-made subscriber implementations.

``CallbackSubscriber`` is the adapter for collaborators that expose four
plain callbacks. The other classes are small building blocks used by the
CLI and the tests.
"""

import logging
from typing import Callable, List, Optional

from .event_data import Event, EventType
from .event_subscriber import EventSubscriber, StreamSubscriber

logger = logging.getLogger(__name__)

class CallableSubscriber(EventSubscriber):
    """A subscriber that wraps a callable function."""
    
    def __init__(self, callback: Callable[[Event], None], event_types: List[EventType]):
        """Initialize callable subscriber.
        
        Args:
            callback (Callable[[Event], None]): Function to call on events.
            event_types (List[EventType]): Event types to subscribe to.
        """
        self.callback = callback
        self.event_types = event_types
    
    def on_event(self, event: Event) -> None:
        """Handle event by calling the callback function.
        
        Args:
            event (Event): The event to handle.
        """
        self.callback(event)
    
    def get_subscribed_events(self) -> List[EventType]:
        return self.event_types


class CallbackSubscriber(StreamSubscriber):
    """Forwards the published events to plain callbacks.

    Any callback left to None is simply not called.
    """

    def __init__(self,
                 on_character: Optional[Callable[[str], None]] = None,
                 on_complete: Optional[Callable[[], None]] = None,
                 on_error: Optional[Callable[[str], None]] = None,
                 on_status: Optional[Callable[[str], None]] = None):
        self._on_character = on_character
        self._on_complete = on_complete
        self._on_error = on_error
        self._on_status = on_status

    def on_character(self, char: str) -> None:
        if self._on_character:
            self._on_character(char)

    def on_complete(self) -> None:
        if self._on_complete:
            self._on_complete()

    def on_error(self, message: str) -> None:
        if self._on_error:
            self._on_error(message)

    def on_status(self, message: str) -> None:
        if self._on_status:
            self._on_status(message)


class ContentAccumulatorSubscriber(StreamSubscriber):
    """Subscriber that collects the typed characters into the full answer."""
    
    def __init__(self):
        """Initialize content collector."""
        self.full_response = ""
        self.last_status: Optional[str] = None
        self.error: Optional[str] = None
        self.completed = False

    def on_character(self, char: str) -> None:
        self.full_response += char

    def on_status(self, message: str) -> None:
        self.last_status = message

    def on_complete(self) -> None:
        self.completed = True

    def on_error(self, message: str) -> None:
        self.error = message
    
    def reset(self) -> None:
        """Reset the collector for a new response."""
        self.full_response = ""
        self.last_status = None
        self.error = None
        self.completed = False
