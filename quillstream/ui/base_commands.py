"""Base chat commands module for handling core chat interface commands.

Contains the BaseChatCommands class which provides basic command handling functionality
for the chat interface, including help, exit, cancellation and log control.
"""

import logging

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from quillstream import __version__
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.ui.abstract_commands import AbstractCommands

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL
}


class BaseChatCommands(AbstractCommands):
    """Handles processing of command inputs in the chat interface."""

    def _register_commands(self) -> None:
        """Register all available chat commands with their handlers."""
        self.commands = {
            'help': {
                'handler': self._cmd_help,
                'description': "Show this help message",
                'is_async': False,
                'args': {}
            },
            'exit': {
                'handler': self._cmd_exit,
                'description': "End the chat session",
                'is_async': False,
                'args': {}
            },
            'quit': {
                'handler': self._cmd_exit,
                'description': "End the chat session",
                'is_async': False,
                'args': {}
            },
            'cancel': {
                'handler': self._cmd_cancel,
                'description': "Stop the answer currently being typed",
                'is_async': False,
                'args': {}
            },
            'set_log_level': {
                'handler': self._cmd_set_log_level,
                'description': "Change the log level",
                'is_async': False,
                'args': {
                    'level': {
                        'positional': True,
                        'completer_type': 'suggestions',
                        'values': list(LOG_LEVELS),
                        'description': "Log level",
                        'required': True
                    }
                }
            },
            'version': {
                'handler': self._cmd_version,
                'description': "Show the version of Quillstream",
                'is_async': False,
                'args': {}
            }
        }

    def print_commands_help(self) -> None:
        """Print help for all available chat commands."""
        print_formatted_text(FormattedText([
            ('class:header', "\n=== Base Chat Commands ===\n")
        ]), style=self.style)

        super().print_commands_help()

    def _cmd_help(self, _: str) -> bool:
        """
        This command is picked up by the ChatCommandHandler and not here.
        That's because it concerns all commands, not just base commands.
        """
        return True

    def _cmd_exit(self, _: str) -> bool:
        """Exit the chat session.
        
        Args:
            _ (str): Unused arguments.
            
        Returns:
            bool: False to end the chat session.
        """
        print("Ending chat session...")
        return False

    def _cmd_cancel(self, _: str) -> bool:
        """Cancel the answer being typed, if any.

        Args:
            _ (str): Unused arguments.

        Returns:
            bool: True to continue the chat session.
        """
        if self.chat_session.cancel_current_request():
            self._print_info("Answer cancelled")
        else:
            self._print_info("No answer in progress")
        return True

    def _cmd_set_log_level(self, args: str) -> bool:
        """Set the log level.
        
        Args:
            args (str): Log level name (debug, info, warning, error, critical).
            
        Returns:
            bool: True to continue the chat session.
        """
        level_name = args.strip().lower()

        if level_name in LOG_LEVELS:
            logging_manager.set_log_level(LOG_LEVELS[level_name])
            self.logger.info(f"Log level set to {level_name}")
            if logging_manager.log_level > logging.INFO:
                # the change of log level may have silenced the logger
                print(f"Log level set to {level_name}")
        else:
            self.logger.error(f"Unknown log level: {level_name}. Available levels are: {', '.join(LOG_LEVELS)}")
        return True

    def _cmd_version(self, _: str) -> bool:
        """Display the current version of Quillstream.
        
        Args:
            _ (str): Unused arguments.
            
        Returns:
            bool: True to continue the chat session.
        """
        self.logger.info(f"Quillstream version: {__version__}")
        return True
