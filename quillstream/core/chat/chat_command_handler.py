"""Chat command handler module for processing user commands in the chat interface.

This module provides a central handler for all chat commands by combining
base commands and settings commands into a unified interface.
"""

from typing import Tuple, Optional

from prompt_toolkit.completion import FuzzyCompleter, WordCompleter
from prompt_toolkit.styles import Style

from quillstream.core.logging.logging_manager import logging_manager
from quillstream.config.settings_registry import SettingsRegistry
from quillstream.core.chat.settings_commands import SettingsCommands
from quillstream.ui.base_commands import BaseChatCommands


class ChatCommandHandler:
    """Handles processing of command inputs in the chat interface."""

    def __init__(self, chat_session, settings_registry: SettingsRegistry, style: Optional[Style] = None):
        """Initialize the command handler.
        
        Args:
            chat_session: The chat session this handler is associated with.
            settings_registry (SettingsRegistry): The settings registry containing configuration.
            style (Optional[Style]): Style for formatting command output.
        """
        self.settings_registry = settings_registry
        self.base_commands = BaseChatCommands(chat_session, settings_registry, style)
        self.settings_commands = SettingsCommands(chat_session, settings_registry, style)

        self.logger = logging_manager.get_session("quillstream.core.chat.command_handler")

        self._register_commands()
    
    def _register_commands(self) -> None:
        """Register all available chat commands with their handlers."""
        self.commands = {}
        self.commands.update(self.base_commands.reload_commands())
        self.commands.update(self.settings_commands.reload_commands())

        self.command_completer = FuzzyCompleter(WordCompleter(list(self.commands), sentence=True))

        self.sync_commands = {}
        self.async_commands = {}
        
        for cmd_name, cmd_info in self.commands.items():
            if cmd_info['is_async']:
                self.async_commands[cmd_name] = (cmd_info['handler'], cmd_info['description'])
            else:
                self.sync_commands[cmd_name] = (cmd_info['handler'], cmd_info['description'])
        
    def print_commands_help(self) -> None:
        """Print help for all available chat commands."""
        print("\n=== Chat Commands ===")
        print("Type 'help' for this help message")
        print("Anything else is sent as a query; sending a new one stops the answer being typed")
        print()
        
        self.base_commands.print_commands_help()
        self.settings_commands.print_commands_help()
            
        print("======================\n")

    async def process_command(self, user_input: str) -> Tuple[bool, bool]:
        """Process a potential command from user input.
        
        Args:
            user_input (str): The user's input text.
            
        Returns:
            Tuple[bool, bool]: (is_command, should_continue)
              - is_command: True if input was a command
              - should_continue: False if chat session should end
        """
        user_input = user_input.strip()
        
        if not user_input:
            return True, True
            
        parts = user_input.split(' ', 1)
        command = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""

        if command == "help":
            self.print_commands_help()
            return True, True
        
        if command in self.sync_commands:
            handler_func, _ = self.sync_commands[command]
            return True, handler_func(args)
        elif command in self.async_commands:
            async_handler_func, _ = self.async_commands[command]
            return True, await async_handler_func(args)
            
        # Not a command
        return False, True

    def get_all_command_metadata(self) -> dict:
        """Get all command metadata from the command groups.
        
        Returns:
            dict: Combined command metadata.
        """
        return self.commands
