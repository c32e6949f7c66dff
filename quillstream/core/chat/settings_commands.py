"""Settings commands module for handling settings-related CLI operations.

This module provides SettingsCommands class which handles all settings-related
command operations including list, get, set, reset, import and export
through the chat interface.
"""

import json
from pathlib import Path
from typing import Dict, Any, List, Tuple

import yaml

from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from quillstream.ui.abstract_commands import AbstractCommands


class SettingsCommands(AbstractCommands):
    """Handles settings-related command operations in the chat interface."""

    def _register_commands(self) -> None:
        """Register all settings-related commands."""
        setting_arg = {
            'positional': True,
            'completer_type': 'suggestions',
            'values': self._get_available_settings(),
            'description': "Setting in the form category:name",
            'required': True
        }
        force_args = {
            'force-confirm': {
                'positional': False,
                'description': "Skip the confirmation prompt",
                'default': False,
                'is_flag': True,
                'required': False
            },
            'force-protected': {
                'positional': False,
                'description': "Allow changing protected settings",
                'default': False,
                'is_flag': True,
                'required': False
            }
        }

        self.commands = {
            'settings:list': {
                'handler': self._cmd_settings_list,
                'description': "List settings, optionally filtered",
                'is_async': False,
                'args': {
                    'filter': {
                        'positional': True,
                        'description': "Name, category, regex or approximate name",
                        'default': None,
                        'required': False
                    },
                    'format': {
                        'positional': False,
                        'description': "Output format",
                        'default': "table",
                        'completer_type': 'suggestions',
                        'values': ["table", "json", "yaml"],
                        'required': False
                    }
                }
            },
            'settings:get': {
                'handler': self._cmd_settings_get,
                'description': "Show the value and metadata of a setting",
                'is_async': False,
                'args': {'setting': setting_arg}
            },
            'settings:set': {
                'handler': self._cmd_settings_set,
                'description': "Change the value of a setting",
                'is_async': True,
                'args': {
                    'setting': setting_arg,
                    'value': {
                        'positional': True,
                        'description': "New value",
                        'required': True
                    },
                    **force_args
                }
            },
            'settings:reset': {
                'handler': self._cmd_settings_reset,
                'description': "Reset a setting to its default value",
                'is_async': True,
                'args': {'setting': setting_arg, **force_args}
            },
            'settings:export': {
                'handler': self._cmd_settings_export,
                'description': "Export settings to a file",
                'is_async': False,
                'args': {
                    'file': {
                        'positional': True,
                        'completer_type': 'path',
                        'description': "Destination file",
                        'required': True
                    },
                    'format': {
                        'positional': False,
                        'completer_type': 'suggestions',
                        'values': ["json", "yaml", "toml"],
                        'description': "File format, detected from the extension by default",
                        'default': None,
                        'required': False
                    },
                    'all': {
                        'positional': False,
                        'description': "Include read-only settings",
                        'default': False,
                        'is_flag': True,
                        'required': False
                    }
                }
            },
            'settings:import': {
                'handler': self._cmd_settings_import,
                'description': "Import settings from a file",
                'is_async': True,
                'args': {
                    'file': {
                        'positional': True,
                        'completer_type': 'path',
                        'description': "Source file",
                        'required': True
                    },
                    **force_args
                }
            }
        }

    def print_commands_help(self) -> None:
        """Print help for all available chat commands."""
        print_formatted_text(FormattedText([
            ('class:header', "\n=== Settings Commands ===\n")
        ]), style=self.style)

        super().print_commands_help()

    def _cmd_settings_list(self, args: str) -> bool:
        """List all available settings with optional filtering.

        Args:
            args (str): Command arguments as a string.

        Returns:
            bool: True to continue the chat session.
        """
        parsed_args = self._parse_args(args, self.commands['settings:list']['args'])
        filter_pattern = parsed_args.get('filter') or None
        output_format = parsed_args.get('format', "table")

        settings = self.settings_registry.list_settings(filter_pattern)
        self._output_settings_list(settings, output_format)
        return True

    def _cmd_settings_get(self, args: str) -> bool:
        """Get the value and metadata for a specific setting.

        Args:
            args (str): Command arguments as a string.

        Returns:
            bool: True to continue the chat session.
        """
        parsed_args = self._parse_args(args, self.commands['settings:get']['args'])
        setting_path = parsed_args.get('setting')

        if not setting_path:
            self._print_error("A setting name is required, e.g. settings:get transport:endpoint")
            return True

        try:
            category, name = self._parse_setting_path(setting_path)
            self._output_setting_info(self.settings_registry.get_setting(category, name))
        except ValueError as e:
            self._print_error(str(e))
        return True

    async def _cmd_settings_set(self, args: str) -> bool:
        """Set the value of a specific setting.

        Args:
            args (str): Command arguments as a string.

        Returns:
            bool: True to continue the chat session.
        """
        parsed_args = self._parse_args(args, self.commands['settings:set']['args'])
        setting_path = parsed_args.get('setting')
        value = parsed_args.get('value')

        if not setting_path or value is None:
            self._print_error("A setting name and a value are required")
            return True

        try:
            category, name = self._parse_setting_path(setting_path)

            if not parsed_args.get('force-confirm'):
                if not await self._request_user_consent(f"Set {category}:{name} to '{value}'?"):
                    self._print_info("Operation cancelled")
                    return True

            current_setting = self.settings_registry.get_setting(category, name)
            typed_value = self._convert_value(value, current_setting["current_value"])
            if self.settings_registry.set_setting(category, name, typed_value, force=parsed_args.get('force-protected', False)):
                self._print_success(f"{category}:{name} set to {typed_value}")
            else:
                self._print_error(f"Failed to set {category}:{name}")
        except ValueError as e:
            self._print_error(str(e))
        return True

    async def _cmd_settings_reset(self, args: str) -> bool:
        """Reset a setting to its default value.

        Args:
            args (str): Command arguments as a string.

        Returns:
            bool: True to continue the chat session.
        """
        parsed_args = self._parse_args(args, self.commands['settings:reset']['args'])
        setting_path = parsed_args.get('setting')

        if not setting_path:
            self._print_error("A setting name is required, e.g. settings:reset typing:base_delay_ms")
            return True

        try:
            category, name = self._parse_setting_path(setting_path)
            if not parsed_args.get('force-confirm'):
                if not await self._request_user_consent(f"Reset {category}:{name} to its default value?"):
                    self._print_info("Operation cancelled")
                    return True

            if self.settings_registry.reset_setting(category, name, force=parsed_args.get('force-protected', False)):
                self._print_success(f"{category}:{name} reset")
            else:
                self._print_error(f"Failed to reset {category}:{name}")
        except ValueError as e:
            self._print_error(str(e))
        return True

    def _cmd_settings_export(self, args: str) -> bool:
        """Export settings to a file.

        Args:
            args (str): Command arguments as a string.

        Returns:
            bool: True to continue the chat session.
        """
        parsed_args = self._parse_args(args, self.commands['settings:export']['args'])
        file_path = parsed_args.get('file')

        if not file_path:
            self._print_error("A file path is required")
            return True

        try:
            if self.settings_registry.export_settings_to_file(file_path, parsed_args.get('format'),
                                                              include_read_only=parsed_args.get('all', False)):
                self._print_success(f"Settings exported to {file_path}")
            else:
                self._print_error(f"Failed to export settings to {file_path}")
        except ValueError as e:
            self._print_error(str(e))
        return True

    async def _cmd_settings_import(self, args: str) -> bool:
        """Import settings from a file.

        Args:
            args (str): Command arguments as a string.

        Returns:
            bool: True to continue the chat session.
        """
        parsed_args = self._parse_args(args, self.commands['settings:import']['args'])
        file_path = parsed_args.get('file')

        if not file_path:
            self._print_error("A file path is required")
            return True

        if not Path(file_path).exists():
            self._print_error(f"File not found: {file_path}")
            return True

        try:
            if not parsed_args.get('force-confirm'):
                if not await self._request_user_consent(f"Import settings from {file_path}?"):
                    self._print_info("Operation cancelled")
                    return True

            if self.settings_registry.import_settings_from_file(file_path, force=parsed_args.get('force-protected', False)):
                self._print_success(f"Settings imported from {file_path}")
            else:
                self._print_error(f"Failed to import settings from {file_path}")
        except ValueError as e:
            self._print_error(str(e))
        return True

    # Helper methods

    async def _request_user_consent(self, message: str) -> bool:
        """Ask the user to confirm an operation.
        
        Args:
            message (str): Message to display for confirmation.

        Returns:
            bool: True if user approves, False otherwise.
        """        
        session = PromptSession()
        while True:
            response = (await session.prompt_async(f"\n{message} [y/N]: ")).strip().lower()
            if response in ['y', 'yes']:
                return True
            elif response in ['n', 'no', '']:
                return False
            else:
                print("Please enter 'y' for yes or 'n' for no.")
    
    def _parse_setting_path(self, setting_path: str) -> Tuple[str, str]:
        """Parse a setting path in format 'category:name'.
        
        Args:
            setting_path (str): Setting path to parse.
            
        Returns:
            Tuple[str, str]: Tuple of (category, name).
            
        Raises:
            ValueError: If path format is invalid.
        """
        parts = setting_path.split(":", 1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Invalid setting path '{setting_path}', expected category:name")
        
        return parts[0], parts[1]
    
    def _convert_value(self, value: str, current_value: Any) -> Any:
        """Convert string value to appropriate type based on current value.
        
        Args:
            value (str): String value to convert.
            current_value (Any): Current value to infer type from.
            
        Returns:
            Any: Converted value.
        """
        if isinstance(current_value, bool):
            return value.lower() in ("true", "1", "yes", "on", "enabled")
        elif isinstance(current_value, int):
            return int(value)
        elif isinstance(current_value, float):
            return float(value)
        else:
            return value
    
    def _output_settings_list(self, settings: List[Dict[str, Any]], format_type: str) -> None:
        """Output settings list in specified format.
        
        Args:
            settings (List[Dict[str, Any]]): List of settings to output.
            format_type (str): Output format ("table", "json", or "yaml").
        """
        if format_type == "json":
            print(json.dumps(self.settings_registry.make_serializable(settings), indent=2))
        elif format_type == "yaml":
            print(yaml.dump(self.settings_registry.make_serializable(settings), default_flow_style=False))
        else:
            self._print_header("Settings")
            current_category = None
            for setting in settings:
                if setting["category_name"] != current_category:
                    current_category = setting["category_name"]
                    self._print_info(f"[{current_category}]")

                access_level = getattr(setting["access_level"], "value", setting["access_level"])
                self._print_info(f"  {setting['name']} = {setting['current_value']} ({access_level})")
                self._print_detail(f"    {setting['description']}")
    
    def _output_setting_info(self, setting: Dict[str, Any]) -> None:
        """Output detailed information for a single setting.
        
        Args:
            setting (Dict[str, Any]): Setting information to output.
        """
        access_level = getattr(setting["access_level"], "value", setting["access_level"])
        
        self._print_header(f"{setting['category_name']}:{setting['name']}")
        self._print_info(f"Description: {setting['description']}")
        self._print_info(f"Current: {setting['current_value']}")
        self._print_info(f"Default: {setting['default_value']}")
        self._print_info(f"Access Level: {access_level}")
        self._print_info(f"Type: {setting['type']}")

    def _get_available_settings(self) -> List[str]:
        """Get a list of all available settings in the registry.

        Returns:
            List[str]: List of setting names.
        """
        if not self.settings_registry:
            return []

        return [f"{setting['category_name']}:{setting['name']}" for setting in self.settings_registry.list_settings()]

    def _print_detail(self, text: str) -> None:
        """Print detail text."""
        print_formatted_text(FormattedText([("class:detail", text)]), style=self.style)
