"""Settings for the typing animation.

Configures how fast streamed content is replayed character by character.
"""

import os
from pydantic import BaseModel, Field

from .settings_access_level import SettingAccessLevel

class TypingSettings(BaseModel):
    """Settings for the typing animation."""

    base_delay_ms: float = Field(
        default_factory=lambda: float(os.environ.get("QUILLSTREAM_TYPING_SPEED", 30)),
        ge=0.0,
        description="Base delay in milliseconds between two typed characters. Spaces are typed faster, punctuation and line breaks slower.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    min_delay_ms: float = Field(
        default=10.0,
        ge=0.0,
        description="Lower bound in milliseconds for the delay between two typed characters.",
        json_schema_extra={"access_level": SettingAccessLevel.READ_ONLY},
    )

    jitter_ratio: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Maximum random variation applied to each delay, as a fraction of that delay.",
        json_schema_extra={"access_level": SettingAccessLevel.READ_ONLY},
    )

    class Config:
        extra = "forbid"
