import logging
from typing import Optional

from quillstream.config.settings import AppSettings
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.core.stream.cancellation import CancellationToken
from quillstream.core.stream.event_subscriber import EventSubscriber
from quillstream.core.stream.event_subscribers import ContentAccumulatorSubscriber
from quillstream.core.stream.orchestrator import StreamOrchestrator
from quillstream.core.stream.stream_session import SessionOutcome

class ChatSession:
    def __init__(self, settings: AppSettings = None, orchestrator: Optional[StreamOrchestrator] = None):
        """Initialize a chat session with the specified settings.
        
        Args:
            settings (AppSettings, optional): Configuration settings for the chat session. 
                                            If None, uses the singleton instance.
            orchestrator (StreamOrchestrator, optional): Orchestrator streaming the answers.
                                            If None, one is created from the settings.
        """
        self.settings = settings or AppSettings.get_instance()
        self.logger = logging_manager.get_session(
            "ChatSession",
            formatter=logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        self.orchestrator = orchestrator or StreamOrchestrator(self.settings)

        # Collects the answer being typed so that it can be retrieved afterwards
        self._accumulator = ContentAccumulatorSubscriber()
        self.orchestrator.subscribe(self._accumulator)

        self.last_query: Optional[str] = None
        self.last_outcome: Optional[SessionOutcome] = None

    @property
    def session_id(self) -> str:
        return self.orchestrator.session_id

    @property
    def last_response(self) -> str:
        """Text typed so far for the latest query."""
        return self._accumulator.full_response

    @property
    def is_streaming(self) -> bool:
        return self.orchestrator.is_streaming

    def register_subscriber(self, subscriber: EventSubscriber) -> None:
        """Register a subscriber to the events of every answer.
        
        Args:
            subscriber (EventSubscriber): The subscriber to register.
        """
        self.orchestrator.subscribe(subscriber)
        self.logger.debug(f"Registered subscriber {type(subscriber).__name__}")

    async def send_message(self, user_message: str, token: Optional[CancellationToken] = None) -> SessionOutcome:
        """Send the user's message and stream the answer.

        An answer still being typed is cancelled first.
        
        Args:
            user_message (str): The user's message.
            token (CancellationToken, optional): Token to cancel this answer with.
            
        Returns:
            SessionOutcome: How the answer ended.
        """
        request = self.orchestrator.create_request(user_message)
        self._accumulator.reset()
        self.last_query = user_message

        self.logger.debug(f"Sending query for session {self.session_id}")
        outcome = await self.orchestrator.run(request, token)
        self.last_outcome = outcome
        return outcome

    def cancel_current_request(self) -> bool:
        """Stop the answer currently being typed.

        Returns:
            bool: True if an answer was cancelled.
        """
        return self.orchestrator.cancel_current_request()

    async def close(self) -> None:
        """Cancel any answer in progress and release the connection."""
        await self.orchestrator.close()
