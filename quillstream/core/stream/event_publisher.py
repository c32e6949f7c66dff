"""Event publisher implementing the publish-subscribe pattern.

This module provides the publisher that manages event subscribers
and distributes the events of streamed answers.
"""

import logging
from typing import List, Dict, Any, Optional

from .event_data import Event, EventType
from .event_subscriber import EventSubscriber

logger = logging.getLogger(__name__)

class EventPublisher:
    """Publisher for events using the observer pattern."""

    def __init__(self):
        """Initialize the publisher."""
        self._subscribers: List[EventSubscriber] = []
    
    @property
    def subscribers(self) -> List[EventSubscriber]:
        """Return a copy of the current subscribers."""
        return list(self._subscribers)

    def subscribe(self, subscriber: EventSubscriber) -> None:
        """Subscribe to events.
        
        Args:
            subscriber (EventSubscriber): Subscriber to add.
        """
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)
            logger.debug(f"Added subscriber for events: {subscriber.get_subscribed_events()}")
    
    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        """Unsubscribe from events.
        
        Args:
            subscriber (EventSubscriber): Subscriber to remove.
        """
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            logger.debug("Removed subscriber")
    
    def clear_subscribers(self) -> None:
        """Remove all subscribers."""
        self._subscribers.clear()
        logger.debug("Cleared all subscribers")
    
    def publish(self, event_type: EventType, data: Dict[str, Any], request_id: Optional[str] = None) -> Event:
        """Build an event and publish it to all interested subscribers.
        
        Args:
            event_type (EventType): Type of event to publish.
            data (Dict[str, Any]): Event data.
            request_id (str, optional): ID of the request the event belongs to.

        Returns:
            Event: The published event.
        """
        event = Event(type=event_type, data=data, request_id=request_id)
        self.publish_event(event)
        return event

    def publish_event(self, event: Event) -> None:
        """Publish an already built event to all interested subscribers.

        A failing subscriber is logged and does not prevent the others
        from being notified.

        Args:
            event (Event): The event to publish.
        """
        for subscriber in list(self._subscribers):
            if event.type in subscriber.get_subscribed_events():
                try:
                    subscriber.on_event(event)
                except Exception as e:
                    logger.error(f"Error notifying subscriber {type(subscriber).__name__}: {e}")
