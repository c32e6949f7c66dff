"""Centralized logger management for Quillstream.

Every component asks the shared ``logging_manager`` for a named logging
session. All sessions live under the ``quillstream`` logger hierarchy so a
single call to :meth:`LoggingManager.set_log_level` adjusts the whole
application at once.
"""

import logging
import sys
import threading
from typing import Dict, Optional

ROOT_LOGGER_NAME = "quillstream"
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingManager:
    """Thread-safe singleton handing out named loggers.

    Sessions share the handler installed on the ``quillstream`` root logger,
    unless a dedicated formatter is requested, in which case the session gets
    its own handler and stops propagating.
    """

    _instance: Optional['LoggingManager'] = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._log_level = logging.INFO
        self._sessions: Dict[str, logging.Logger] = {}

        self._root = logging.getLogger(ROOT_LOGGER_NAME)
        self._root.setLevel(self._log_level)
        self._handler = logging.StreamHandler(sys.stderr)
        self._handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        self._root.addHandler(self._handler)
        # Avoid duplicated records through the interpreter's root logger
        self._root.propagate = False

    @property
    def log_level(self) -> int:
        """Return the current log level of the application."""
        return self._log_level

    @property
    def handler(self) -> logging.Handler:
        """Return the handler shared by all sessions."""
        return self._handler

    def set_handler(self, handler: logging.Handler) -> None:
        """Replace the handler shared by all sessions.

        Args:
            handler (logging.Handler): The new handler.
        """
        self._root.removeHandler(self._handler)
        handler.setLevel(self._log_level)
        self._handler = handler
        self._root.addHandler(handler)

    def get_session(self, name: str, formatter: Optional[logging.Formatter] = None) -> logging.Logger:
        """Get (or create) a named logging session.

        Args:
            name (str): Name of the session, e.g. the component name.
            formatter (logging.Formatter, optional): Dedicated formatter for this session.

        Returns:
            logging.Logger: The logger for the session.
        """
        if name in self._sessions:
            return self._sessions[name]

        full_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
        logger = logging.getLogger(full_name)

        if formatter is not None:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            handler.setLevel(self._log_level)
            logger.addHandler(handler)
            logger.propagate = False

        self._sessions[name] = logger
        return logger

    def set_log_level(self, level: int) -> None:
        """Set the log level for every session.

        Args:
            level (int): A level from the ``logging`` module.
        """
        self._log_level = level
        self._root.setLevel(level)
        self._handler.setLevel(level)
        for logger in self._sessions.values():
            for handler in logger.handlers:
                handler.setLevel(level)


logging_manager = LoggingManager()
