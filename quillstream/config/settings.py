"""Modular settings configuration for Quillstream.

Imports and combines all modular settings classes.
"""

import threading
from typing import Optional

from pydantic import BaseModel, Field
from .settings_access_level import SettingAccessLevel
from .transport_settings import TransportSettings
from .typing_settings import TypingSettings
from .path_settings import PathSettings
from .ui_settings import UISettings

__all__ = ["AppSettings", "SettingAccessLevel"]


# Global singleton state - outside the class to avoid Pydantic interference
_app_settings_instance: Optional['AppSettings'] = None
_app_settings_lock = threading.Lock()


class AppSettings(BaseModel):
    """Root settings model that aggregates all setting categories.
    
    Implemented as a thread-safe singleton to provide global access
    to application settings throughout the codebase.
    """
    
    transport: TransportSettings = Field(default_factory=TransportSettings)
    typing: TypingSettings = Field(default_factory=TypingSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    ui: UISettings = Field(default_factory=UISettings)
    
    def __new__(cls, *args, **kwargs):
        """Ensure only one instance exists (singleton pattern).
        
        Returns:
            AppSettings: The singleton instance.
        """
        global _app_settings_instance
        if _app_settings_instance is None:
            with _app_settings_lock:
                # Double-check locking pattern
                if _app_settings_instance is None:
                    _app_settings_instance = super().__new__(cls)
        return _app_settings_instance
    
    @classmethod
    def get_instance(cls) -> 'AppSettings':
        """Get the singleton instance of AppSettings.
        
        Creates the instance if it doesn't exist.
        
        Returns:
            AppSettings: The singleton instance.
        """
        global _app_settings_instance
        if _app_settings_instance is None:
            cls()  # This will create the instance via __new__
        return _app_settings_instance
    
    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance.
        
        This method is primarily for testing purposes.
        """
        global _app_settings_instance
        with _app_settings_lock:
            _app_settings_instance = None

    @property
    def endpoint(self) -> str:
        """Get the URL of the streaming query endpoint."""
        return self.transport.endpoint
    
    class Config:
        extra = "forbid"
