"""Integration tests for the command system.

These tests validate the complete command system integration including:
1. Command registration and discovery
2. Argument parsing
3. Base and settings command execution against a real settings registry
4. Dispatch of user input between commands and queries
"""

import sys
import json
import logging
import asyncio
import tempfile
import unittest
from io import StringIO
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from prompt_toolkit.styles import Style

# Add the parent directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.test_decorators import integration_test

from quillstream import __version__
from quillstream.config.settings import AppSettings
from quillstream.config.settings_registry import SettingsRegistry
from quillstream.core.chat.chat_command_handler import ChatCommandHandler
from quillstream.core.chat.chat_session import ChatSession
from quillstream.core.chat.settings_commands import SettingsCommands
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.ui.base_commands import BaseChatCommands


class AsyncTestCase(unittest.TestCase):
    """Base test case with async support."""

    def run_async(self, async_test):
        """Helper to run async tests."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(async_test)
        finally:
            loop.close()


class TestCommandSystemIntegration(AsyncTestCase):
    """Integration tests for the command system."""

    def setUp(self):
        """Set up a command handler over a fresh settings registry."""
        AppSettings.reset_instance()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.settings_registry = SettingsRegistry(AppSettings(), load_persistent=False)

        self.mock_chat_session = MagicMock(spec=ChatSession)
        self.mock_chat_session.cancel_current_request.return_value = True

        self.command_style = Style.from_dict({
            'command.name': 'bold #44ff00',
            'command.description': "#ffffff",
        })

        self.cmd_handler = ChatCommandHandler(
            self.mock_chat_session,
            self.settings_registry,
            self.command_style
        )
        self.settings_commands = self.cmd_handler.settings_commands

    def tearDown(self):
        self.temp_dir.cleanup()
        AppSettings.reset_instance()

    def process(self, user_input: str):
        return self.run_async(self.cmd_handler.process_command(user_input))

    @integration_test
    def test_command_handler_initialization(self):
        """Test that the handler combines every command group."""
        self.assertIsInstance(self.cmd_handler.base_commands, BaseChatCommands)
        self.assertIsInstance(self.cmd_handler.settings_commands, SettingsCommands)

        commands = self.cmd_handler.get_all_command_metadata()
        for name in ('help', 'exit', 'quit', 'cancel', 'set_log_level', 'version'):
            self.assertIn(name, commands, f"Base command {name} should be registered")
        for name in ('list', 'get', 'set', 'reset', 'export', 'import'):
            self.assertIn(f"settings:{name}", commands, f"settings:{name} should be registered")

        for cmd_name, cmd_info in commands.items():
            for key in ('handler', 'description', 'is_async', 'args'):
                self.assertIn(key, cmd_info, f"Command {cmd_name} should define '{key}'")

    @integration_test
    def test_sync_and_async_split(self):
        """Test that coroutine handlers are dispatched as async commands."""
        self.assertIn('settings:set', self.cmd_handler.async_commands)
        self.assertIn('settings:import', self.cmd_handler.async_commands)
        self.assertIn('settings:list', self.cmd_handler.sync_commands)
        self.assertIn('exit', self.cmd_handler.sync_commands)
        self.assertFalse(set(self.cmd_handler.sync_commands) & set(self.cmd_handler.async_commands))

    @integration_test
    def test_setting_names_are_suggested(self):
        """Test that the setting argument suggests every registered setting."""
        values = self.settings_commands.commands['settings:get']['args']['setting']['values']
        self.assertIn('transport:endpoint', values)
        self.assertIn('typing:base_delay_ms', values)

    @integration_test
    def test_parse_args(self):
        """Test positional, named and flag arguments."""
        arg_defs = self.settings_commands.commands['settings:set']['args']

        parsed = self.settings_commands._parse_args("ui:welcome_message Hello there --force-confirm", arg_defs)

        self.assertEqual(parsed['setting'], 'ui:welcome_message')
        self.assertEqual(parsed['value'], 'Hello there', "The last positional takes the remaining words")
        self.assertTrue(parsed['force-confirm'])
        self.assertFalse(parsed['force-protected'], "Missing flags keep their default")

    @integration_test
    def test_parse_args_quoted_and_named(self):
        """Test quoted values and named options."""
        list_args = self.settings_commands.commands['settings:list']['args']
        parsed = self.settings_commands._parse_args('--format json "typing"', list_args)
        self.assertEqual(parsed, {'filter': 'typing', 'format': 'json'})

        defaults = self.settings_commands._parse_args('', list_args)
        self.assertEqual(defaults, {'filter': None, 'format': 'table'})

    @integration_test
    def test_exit_and_quit(self):
        """Test that exit and quit end the chat."""
        with redirect_stdout(StringIO()):
            self.assertEqual(self.process("exit"), (True, False))
            self.assertEqual(self.process("QUIT"), (True, False))

    @integration_test
    def test_queries_are_not_commands(self):
        """Test that anything that is not a command is left to the chat."""
        self.assertEqual(self.process("What is new in the catalog?"), (False, True))
        self.assertEqual(self.process("   "), (True, True))

    @integration_test
    def test_help(self):
        """Test that help lists the commands and keeps the chat going."""
        output = StringIO()
        with redirect_stdout(output):
            self.assertEqual(self.process("help"), (True, True))
        self.assertIn("=== Chat Commands ===", output.getvalue())

    @integration_test
    def test_cancel_command(self):
        """Test that cancel stops the answer being typed."""
        self.assertEqual(self.process("cancel"), (True, True))
        self.mock_chat_session.cancel_current_request.assert_called_once()

    @integration_test
    def test_set_log_level(self):
        """Test changing the log level from the chat."""
        original = logging_manager.log_level
        try:
            self.assertEqual(self.process("set_log_level debug"), (True, True))
            self.assertEqual(logging_manager.log_level, logging.DEBUG)

            with self.assertLogs("quillstream.BaseChatCommands", level="ERROR"):
                self.process("set_log_level verbose")
            self.assertEqual(logging_manager.log_level, logging.DEBUG, "Unknown levels are ignored")
        finally:
            logging_manager.set_log_level(original)

    @integration_test
    def test_version(self):
        """Test that version reports the package version."""
        with self.assertLogs("quillstream.BaseChatCommands", level="INFO") as logs:
            self.process("version")
        self.assertIn(__version__, logs.output[0])

    @integration_test
    def test_settings_list_json(self):
        """Test listing settings as JSON."""
        output = StringIO()
        with redirect_stdout(output):
            self.assertEqual(self.process("settings:list typing --format json"), (True, True))

        listed = json.loads(output.getvalue())
        self.assertEqual({s['category_name'] for s in listed}, {"typing"})
        self.assertIn("base_delay_ms", {s['name'] for s in listed})

    @integration_test
    def test_settings_set_with_confirmation_skipped(self):
        """Test setting a value without the confirmation prompt."""
        result = self.process("settings:set typing:base_delay_ms 42 --force-confirm")

        self.assertEqual(result, (True, True))
        self.assertEqual(self.settings_registry.settings.typing.base_delay_ms, 42.0)

    @integration_test
    def test_settings_set_declined(self):
        """Test that declining the confirmation leaves the setting unchanged."""
        self.settings_commands._request_user_consent = AsyncMock(return_value=False)
        before = self.settings_registry.settings.transport.model

        self.process("settings:set transport:model other-model")

        self.settings_commands._request_user_consent.assert_awaited_once()
        self.assertEqual(self.settings_registry.settings.transport.model, before)

    @integration_test
    def test_settings_set_protected(self):
        """Test that protected settings require --force-protected."""
        with self.assertLogs("quillstream.SettingsCommands", level="ERROR") as logs:
            self.process("settings:set transport:api_key new-key --force-confirm")
        self.assertIn("protected", logs.output[0])
        self.assertNotEqual(self.settings_registry.settings.transport.api_key, "new-key")

        self.process("settings:set transport:api_key new-key --force-confirm --force-protected")
        self.assertEqual(self.settings_registry.settings.transport.api_key, "new-key")

    @integration_test
    def test_settings_set_read_only(self):
        """Test that read-only settings are refused."""
        with self.assertLogs("quillstream.SettingsCommands", level="ERROR") as logs:
            self.process("settings:set typing:jitter_ratio 0.5 --force-confirm --force-protected")
        self.assertIn("read-only", logs.output[0])
        self.assertEqual(self.settings_registry.settings.typing.jitter_ratio, 0.2)

    @integration_test
    def test_settings_get_errors(self):
        """Test the errors reported by settings:get."""
        with self.assertLogs("quillstream.SettingsCommands", level="ERROR") as logs:
            self.process("settings:get typing:no_such_setting")
            self.process("settings:get no-colon")
        self.assertIn("not found", logs.output[0])
        self.assertIn("expected category:name", logs.output[1])

    @integration_test
    def test_settings_reset(self):
        """Test resetting a setting to its default value."""
        self.process("settings:set ui:show_status false --force-confirm")
        self.assertFalse(self.settings_registry.settings.ui.show_status)

        self.process("settings:reset ui:show_status --force-confirm")
        self.assertTrue(self.settings_registry.settings.ui.show_status)

    @integration_test
    def test_settings_export_and_import(self):
        """Test exporting settings to a file and importing them back."""
        export_file = Path(self.temp_dir.name) / "exported.json"
        self.process("settings:set transport:tenant_id exported-tenant --force-confirm")

        self.process(f"settings:export {export_file}")
        self.assertTrue(export_file.exists())
        self.assertEqual(json.loads(export_file.read_text())["transport"]["tenant_id"], "exported-tenant")

        self.process("settings:set transport:tenant_id other-tenant --force-confirm")
        self.process(f"settings:import {export_file} --force-confirm")
        self.assertEqual(self.settings_registry.settings.transport.tenant_id, "exported-tenant")

    @integration_test
    def test_settings_import_missing_file(self):
        """Test importing from a file that does not exist."""
        missing = Path(self.temp_dir.name) / "missing.toml"
        with self.assertLogs("quillstream.SettingsCommands", level="ERROR") as logs:
            self.assertEqual(self.process(f"settings:import {missing} --force-confirm"), (True, True))
        self.assertIn("File not found", logs.output[0])


def run_command_system_integration_tests() -> bool:
    """Run all command system integration tests."""
    suite = unittest.TestLoader().loadTestsFromTestCase(TestCommandSystemIntegration)
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)
    return result.wasSuccessful()


if __name__ == "__main__":
    success = run_command_system_integration_tests()
    sys.exit(0 if success else 1)
