"""Streaming ingestion and typing animation.

This package turns the streamed body of a query into typed characters
published to subscribers, and handles cancellation of abandoned requests.
"""
from .event_data import EventType, Event
from .cancellation import CancellationToken
from .event_publisher import EventPublisher
from .event_subscriber import EventSubscriber, StreamSubscriber
from .event_subscribers import (
    CallableSubscriber,
    CallbackSubscriber,
    ContentAccumulatorSubscriber
)
from .event_decoder import EventDecoder
from .typing_scheduler import TypingScheduler, DelayClass, SchedulerState, TypingUnit
from .stream_session import StreamSession, SessionState, SessionOutcome
from .orchestrator import StreamOrchestrator

__all__ = [
    "EventType",
    "Event",
    "CancellationToken",
    "EventPublisher",
    "EventSubscriber",
    "StreamSubscriber",
    "CallableSubscriber",
    "CallbackSubscriber",
    "ContentAccumulatorSubscriber",
    "EventDecoder",
    "TypingScheduler",
    "DelayClass",
    "SchedulerState",
    "TypingUnit",
    "StreamSession",
    "SessionState",
    "SessionOutcome",
    "StreamOrchestrator"
]
