"""CLI Event Subscriber for managing UI state and display."""

import time
from enum import IntFlag, auto
from typing import Optional

from prompt_toolkit import print_formatted_text as print_pt

from quillstream.config.settings import AppSettings
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.core.stream.event_subscriber import StreamSubscriber


class UIStateFlags(IntFlag):
    NONE = 0
    CONTENT_STREAMING = auto()
    ERROR_DISPLAYED = auto()
    INFO_DISPLAYED = auto()
    USER_INPUT_READY = auto()


class UIStateManager:
    """Utility for managing UI state flags."""
    def __init__(self):
        self.flags = UIStateFlags.USER_INPUT_READY

    def set(self, flag: UIStateFlags):
        self.flags |= flag

    def clear(self, flag: UIStateFlags):
        self.flags &= ~flag

    def is_set(self, flag: UIStateFlags) -> bool:
        return bool(self.flags & flag)


class CLIEventSubscriber(StreamSubscriber):
    """Renders a streamed answer in the terminal.

    Characters are printed as they are typed. Status updates and errors
    are kept for the bottom toolbar, which shows them until they expire.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        """Initialize the CLI event subscriber with default state."""
        self.logger = logging_manager.get_session("CLIEventSubscriber")
        self.settings = settings or AppSettings.get_instance()

        # Error/Info Display
        self.current_error: Optional[str] = None
        self.current_info: Optional[str] = None
        self.message_timeout: float = 5.0  # seconds
        self.last_message_time: float = 0.0

        self.characters_typed = 0
        self.ui_state = UIStateManager()

    def on_character(self, char: str) -> None:
        if not self.ui_state.is_set(UIStateFlags.CONTENT_STREAMING):
            self.ui_state.clear(UIStateFlags.USER_INPUT_READY)
            self.ui_state.set(UIStateFlags.CONTENT_STREAMING)
        self.characters_typed += 1
        print_pt(char, end="", flush=True)

    def on_status(self, message: str) -> None:
        if self.settings.ui.show_status:
            self._set_info(message)

    def on_complete(self) -> None:
        self._end_answer()
        self.current_info = None
        self.logger.debug("Answer complete, USER_INPUT_READY set")

    def on_error(self, message: str) -> None:
        self._end_answer()
        self._set_error(f"Query Error: {message}")

    def on_cancelled(self) -> None:
        """Called by the chat when the answer being typed was cancelled."""
        self._end_answer()
        self._set_info("Answer cancelled")

    def set_processing_user_message(self, processing: bool = True) -> None:
        """Set whether a user message is being answered.

        Args:
            processing (bool): True if processing, False if done.
        """
        if processing:
            self.characters_typed = 0
            self.ui_state.clear(UIStateFlags.USER_INPUT_READY)
        else:
            self.ui_state.set(UIStateFlags.USER_INPUT_READY)

    def is_ready_for_user_input(self) -> bool:
        return (not self.ui_state.is_set(UIStateFlags.CONTENT_STREAMING)
                and self.ui_state.is_set(UIStateFlags.USER_INPUT_READY))

    def _end_answer(self) -> None:
        if self.ui_state.is_set(UIStateFlags.CONTENT_STREAMING):
            print_pt("")  # new line after the typed answer
            self.ui_state.clear(UIStateFlags.CONTENT_STREAMING)
        self.ui_state.set(UIStateFlags.USER_INPUT_READY)

    # UI State Management
    def _set_error(self, message: str) -> None:
        """Set error message with timestamp."""
        self.ui_state.set(UIStateFlags.ERROR_DISPLAYED)
        self.current_error = message
        self.current_info = None
        self.last_message_time = time.time()

    def _set_info(self, message: str) -> None:
        """Set info message with timestamp."""
        self.ui_state.set(UIStateFlags.INFO_DISPLAYED)
        self.current_info = message
        self.current_error = None
        self.last_message_time = time.time()

    def _clear_expired_messages(self) -> None:
        """Clear error/info messages after timeout."""
        if time.time() - self.last_message_time > self.message_timeout:
            self.current_error = None
            self.current_info = None
            self.ui_state.clear(UIStateFlags.ERROR_DISPLAYED | UIStateFlags.INFO_DISPLAYED)

    def clear_messages(self) -> None:
        self.current_error = None
        self.current_info = None

    # UI Display Methods
    def get_toolbar_text(self) -> str:
        """Get current toolbar text."""
        self._clear_expired_messages()

        if self.current_error:
            return f"❌ {self.current_error}"
        if self.current_info:
            return f"ℹ️ {self.current_info}"
        if self.ui_state.is_set(UIStateFlags.CONTENT_STREAMING):
            return "✍️ Typing... (Ctrl-X to cancel)"
        return f"🌐 {self.settings.transport.endpoint}"

    def get_right_prompt_text(self) -> str:
        """Get current right prompt text."""
        return f"🤖 {self.settings.transport.provider}\n{self.settings.transport.model}\n✍️ {self.characters_typed} chars"
