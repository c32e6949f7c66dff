"""
Quillstream - typed-out streaming answers from a remote query service

This package provides a client that consumes an event-stream response,
replays its content as live typing and supports cancellation mid-stream.
"""

import os

def _read_version():
    version_file = os.path.join(os.path.dirname(__file__), '..', 'VERSION')
    try:
        with open(version_file, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except OSError:
        return "unknown"

__version__ = _read_version()
