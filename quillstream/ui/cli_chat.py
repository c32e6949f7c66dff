import asyncio
from typing import Optional

from prompt_toolkit import PromptSession, print_formatted_text as print_pt
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style
from prompt_toolkit.key_binding import KeyBindings

from quillstream.core.logging.logging_manager import logging_manager
from quillstream.core.chat.chat_session import ChatSession
from quillstream.core.chat.chat_command_handler import ChatCommandHandler
from quillstream.config.settings_registry import SettingsRegistry
from quillstream.ui.cli_event_subscriber import CLIEventSubscriber

class CLIChat:
    """Command-line interface for chat functionality."""

    def __init__(self, settings_registry: SettingsRegistry, chat_session: Optional[ChatSession] = None):
        """Initialize the CLI chat interface.
        
        Args:
            settings_registry (SettingsRegistry): The settings management instance containing configuration.
            chat_session (ChatSession, optional): The chat session. Created from the settings if None.
        """
        self.settings_registry = settings_registry
        self.settings = settings_registry.settings
        
        # Styling is already configured at the application level
        self.logger = logging_manager.get_session("CLIChat")
        
        history_dir = self.settings.paths.cache_dir / 'histories'
        try:
            history_dir.mkdir(exist_ok=True, parents=True)
            self.prompt_session = PromptSession(
                history=FileHistory(str(history_dir / '.user_inputs')))
        except (IOError, OSError) as e:
            self.logger.warning(f"Could not create history file: {e}")
            self.logger.warning("Falling back to in-memory history")
            self.prompt_session = PromptSession(history=InMemoryHistory())
        
        self.command_style = Style.from_dict({
            # Help display styles
            'command.name': 'bold #44ff00',
            'command.name.base': 'bold #44ff00',
            'command.description': "#ffffff",
            'command.args': 'italic #87afff',
            'header': 'bold #ff9d00 underline',
            'info': '#ffffff',
            'detail': '#a0a0a0',
            'success': '#49a949',
            
            # Toolbar styles
            'toolbar.default': "#63818d",
            'toolbar.error': '#ff6b6b',
            'toolbar.info': "#49a949",
            
            'right-prompt': '#d3d3d3',
        })

        self.chat_session = chat_session or ChatSession(self.settings)
        self.cli_event_subscriber = CLIEventSubscriber(self.settings)
        self.chat_session.register_subscriber(self.cli_event_subscriber)

        self.cmd_handler = ChatCommandHandler(self.chat_session, self.settings_registry, self.command_style)
        self.key_bindings = self._create_key_bindings()

        self._answer_task: Optional[asyncio.Task] = None
    
    def _create_key_bindings(self) -> KeyBindings:
        """Create key bindings for UI control.
        
        Returns:
            KeyBindings: Configured key bindings for the CLI.
        """
        kb = KeyBindings()

        @kb.add('c-x')
        def _(event):
            """Cancel the answer being typed."""
            self.chat_session.cancel_current_request()
            event.app.invalidate()
        
        @kb.add('f4')
        def _(event):
            """Clear current error/info messages."""
            self.cli_event_subscriber.clear_messages()
            event.app.invalidate()
        
        @kb.add('f12')
        def _(event):
            """Show help for key bindings."""
            help_text = (
                "📋 Key Bindings:\n"
                "Ctrl-X - Cancel the answer being typed\n"
                "F4     - Clear messages\n"
                "F12    - Show this help\n"
            )
            print_pt(FormattedText([('class:toolbar.info', help_text)]))
        
        return kb
    
    def _get_bottom_toolbar(self) -> FormattedText:
        """Get bottom toolbar text with styling.
        
        Returns:
            FormattedText: Formatted toolbar text.
        """
        toolbar_text = self.cli_event_subscriber.get_toolbar_text()
        
        if toolbar_text.startswith('❌'):
            return FormattedText([('class:toolbar.error', toolbar_text)])
        elif toolbar_text.startswith('ℹ️'):
            return FormattedText([('class:toolbar.info', toolbar_text)])
        else:
            return FormattedText([('class:toolbar.default', toolbar_text)])
    
    def _get_right_prompt(self) -> FormattedText:
        return FormattedText([('class:right-prompt', self.cli_event_subscriber.get_right_prompt_text())])

    def submit_message(self, user_message: str) -> asyncio.Task:
        """Start answering a message in the background.

        The answer still being typed, if any, is cancelled by the new one.

        Args:
            user_message (str): The user's message.

        Returns:
            asyncio.Task: The task typing the answer.
        """
        self.cli_event_subscriber.set_processing_user_message(True)
        self._answer_task = asyncio.ensure_future(self._answer(user_message))
        return self._answer_task

    async def _answer(self, user_message: str) -> None:
        try:
            outcome = await self.chat_session.send_message(user_message)
            if outcome.is_cancelled:
                self.cli_event_subscriber.on_cancelled()
        except Exception as e:
            self.logger.error(f"Error while answering: {e}")
            self.cli_event_subscriber.set_processing_user_message(False)
    
    async def start_interactive_session(self) -> None:
        """Run an interactive chat session."""
        welcome = self.settings.ui.welcome_message
        if welcome:
            print_pt(FormattedText([('class:header', welcome)]), style=self.command_style)

        while True: 
            try:
                # Answers keep being typed above the prompt
                with patch_stdout():
                    user_message = await self.prompt_session.prompt_async(
                        FormattedText([('green', 'You: ')]),
                        completer=self.cmd_handler.command_completer,
                        style=self.command_style,
                        key_bindings=self.key_bindings,
                        bottom_toolbar=self._get_bottom_toolbar,
                        rprompt=self._get_right_prompt,
                        refresh_interval=0.5
                    )
                
                is_command, should_continue = await self.cmd_handler.process_command(user_message)
                if is_command:
                    if not should_continue:
                        break
                    continue

                self.submit_message(user_message.strip())

            except (KeyboardInterrupt, EOFError):
                print_pt(FormattedText([('red', '\nInterrupted. Ending chat session...')]))
                break
    
    async def initialize_and_run(self) -> None:
        """Run the interactive chat session and release its resources on exit."""
        try:
            await self.start_interactive_session()
        finally:
            self.chat_session.cancel_current_request()
            if self._answer_task is not None:
                await asyncio.gather(self._answer_task, return_exceptions=True)
            await self.chat_session.close()
