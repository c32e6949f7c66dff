"""Base class for groups of chat commands.

A command group registers its commands in ``self.commands`` as
dictionaries describing the handler, a description, whether the handler
is a coroutine and the arguments it accepts.
"""

import shlex
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style

from quillstream.core.logging.logging_manager import logging_manager


class AbstractCommands(ABC):
    """Common behaviour of command groups."""

    def __init__(self, chat_session, settings_registry, style: Optional[Style] = None):
        """Initialize the command group.

        Args:
            chat_session: The chat session the commands act on.
            settings_registry (SettingsRegistry): The settings registry.
            style (Style, optional): Style for formatting command output.
        """
        self.chat_session = chat_session
        self.settings_registry = settings_registry
        self.style = style
        self.logger = logging_manager.get_session(self.__class__.__name__)
        self.commands: Dict[str, Dict[str, Any]] = {}
        self._register_commands()

    @abstractmethod
    def _register_commands(self) -> None:
        """Fill ``self.commands``."""
        pass

    def reload_commands(self) -> Dict[str, Dict[str, Any]]:
        """Register the commands again and return them."""
        self._register_commands()
        return self.commands

    def print_commands_help(self) -> None:
        """Print one line per command."""
        for cmd_name, cmd_info in self.commands.items():
            line = self.format_command(cmd_name, cmd_info)
            args = cmd_info.get('args', {})
            if args:
                line.append(('', ' '))
                line.append(('class:command.args', " ".join(self._format_arg(name, arg) for name, arg in args.items())))
            print_formatted_text(FormattedText(line), style=self.style)

    def format_command(self, cmd_name: str, cmd_info: dict, group: str = 'base') -> list:
        return [
            (f'class:command.name.{group}', cmd_name),
            ('', ' - '),
            ('class:command.description', cmd_info['description'])
        ]

    @staticmethod
    def _format_arg(name: str, arg: dict) -> str:
        label = name if arg.get('positional', True) else f"--{name}"
        return f"<{label}>" if arg.get('required') else f"[{label}]"

    def _parse_args(self, args: str, arg_defs: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        """Parse a command line against the argument definitions.

        Positional arguments are assigned in declaration order, the last one
        receiving the remaining words. Named arguments use ``--name value``,
        flags ``--name``.

        Args:
            args (str): The arguments as typed.
            arg_defs (Dict[str, Dict[str, Any]]): Argument definitions of the command.

        Returns:
            Dict[str, Any]: Parsed values, with defaults for the missing ones.
        """
        parsed = {name: arg.get('default') for name, arg in arg_defs.items() if 'default' in arg}

        try:
            tokens = shlex.split(args)
        except ValueError as e:
            self.logger.warning(f"Could not parse arguments '{args}': {e}")
            tokens = args.split()

        positionals = []
        i = 0
        while i < len(tokens):
            token = tokens[i]
            name = token[2:] if token.startswith("--") else None
            if name in arg_defs and not arg_defs[name].get('positional', True):
                if arg_defs[name].get('is_flag'):
                    parsed[name] = True
                elif i + 1 < len(tokens):
                    i += 1
                    parsed[name] = tokens[i]
            else:
                positionals.append(token)
            i += 1

        positional_names = [name for name, arg in arg_defs.items() if arg.get('positional', True)]
        for index, name in enumerate(positional_names):
            if index >= len(positionals):
                break
            if index == len(positional_names) - 1:
                parsed[name] = " ".join(positionals[index:])
            else:
                parsed[name] = positionals[index]

        return parsed

    def _print_header(self, text: str) -> None:
        """Print a formatted header."""
        print_formatted_text(FormattedText([("class:header", text)]), style=self.style)

    def _print_info(self, text: str) -> None:
        """Print informational text."""
        print_formatted_text(FormattedText([("class:info", text)]), style=self.style)

    def _print_success(self, text: str) -> None:
        """Print success message."""
        print_formatted_text(FormattedText([("class:success", f"✓ {text}")]), style=self.style)

    def _print_error(self, text: str) -> None:
        """Print error message."""
        self.logger.error(text)
