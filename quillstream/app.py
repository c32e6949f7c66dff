import asyncio
import sys

from quillstream.core.logging.logging_config import configure_logging
from quillstream.core.logging.logging_manager import logging_manager
from quillstream.config.settings_registry import SettingsRegistry
from quillstream.ui.cli_chat import CLIChat

# Configure global logging first, before any other logger initializations
is_interactive = sys.stdout.isatty()
configure_logging(enable_styling=is_interactive)

log = logging_manager.get_session("AppMain")

async def main_async():
    """Main entry point for the application.
    
    Returns:
        int: Exit code - 0 for successful execution, 1 on error.
    """
    settings_registry = None
    try:
        settings_registry = SettingsRegistry()

        cli_chat = CLIChat(settings_registry)
        await cli_chat.initialize_and_run()
        
        return 0
        
    except KeyboardInterrupt:
        log.info("Application interrupted by user")
        return 0
    except Exception as e:
        log.error(f"Error in main application: {e}")
        return 1
    finally:
        if settings_registry is not None:
            if settings_registry.save_persistent_settings():
                log.info("Persistent settings saved on exit")
            else:
                log.error("Failed to save persistent settings on exit")

def main():
    """Entry point function that runs the async main function.
    
    Returns:
        int: Exit code from the async main function.
    """
    return asyncio.run(main_async())

if __name__ == "__main__":
    sys.exit(main())
