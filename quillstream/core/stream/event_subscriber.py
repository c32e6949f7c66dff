"""Abstract base classes for event subscribers.

This module defines the interfaces that subscribers must implement
to receive the events of a streamed answer.
"""

from typing import List
from abc import ABC, abstractmethod

from .event_data import Event, EventType

class EventSubscriber(ABC):
    """Abstract base class for event subscribers."""
    
    @abstractmethod
    def on_event(self, event: Event) -> None:
        """Handle an event.
        
        Args:
            event (Event): The event to handle.
        """
        pass
    
    @abstractmethod
    def get_subscribed_events(self) -> List[EventType]:
        """Return list of event types this subscriber is interested in.
        
        Returns:
            List[EventType]: Event types to subscribe to.
        """
        pass


class StreamSubscriber(EventSubscriber):
    """Subscriber with one handler per kind of published event.

    Rendering collaborators override the handlers they care about;
    the defaults do nothing.
    """

    def on_event(self, event: Event) -> None:
        """Dispatch the event to the matching handler.
        
        Args:
            event (Event): The event to handle.
        """
        if event.type == EventType.CHARACTER:
            self.on_character(event.text)
        elif event.type == EventType.STATUS:
            self.on_status(event.message)
        elif event.type == EventType.COMPLETE:
            self.on_complete()
        elif event.type == EventType.ERROR:
            self.on_error(event.message)

    def get_subscribed_events(self) -> List[EventType]:
        return [EventType.CHARACTER, EventType.STATUS, EventType.COMPLETE, EventType.ERROR]

    def on_character(self, char: str) -> None:
        """Handle one typed character."""

    def on_complete(self) -> None:
        """Handle the completion of the answer."""

    def on_error(self, message: str) -> None:
        """Handle the failure of the request."""

    def on_status(self, message: str) -> None:
        """Handle a status update."""
