"""Settings for user interface configuration.

Handles what the interactive chat shows besides the typed answer.
"""

import os
from pydantic import BaseModel, Field

from .settings_access_level import SettingAccessLevel

class UISettings(BaseModel):
    """Settings for user interface configuration."""

    show_status: bool = Field(
        default=True,
        description="Show status updates from the query service in the bottom toolbar.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    welcome_message: str = Field(
        default_factory=lambda: os.environ.get(
            "QUILLSTREAM_WELCOME_MESSAGE", "Hello! Ask me anything about your content."
        ),
        description="Message shown when the chat starts. Leave empty to disable.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    class Config:
        extra = "forbid"
