"""Settings for file and directory paths.

Handles where persistent settings and the prompt history are stored.
"""

import os
from pathlib import Path
from typing import Union
from pydantic import BaseModel, Field, field_validator

from .settings_access_level import SettingAccessLevel

class PathSettings(BaseModel):
    """Settings for file and directory paths."""

    settings_dir: Union[str, Path] = Field(
        default_factory=lambda: Path(os.environ.get("QUILLSTREAM_SETTINGS_DIR", str(Path.home() / ".quillstream" / "settings"))),
        description="Directory holding the persistent settings file.",
        json_schema_extra={"access_level": SettingAccessLevel.READ_ONLY},
    )

    cache_dir: Union[str, Path] = Field(
        default_factory=lambda: Path(os.environ.get("QUILLSTREAM_CACHE_DIR", str(Path.home() / ".quillstream"))),
        description="Directory for cached data such as the prompt history.",
        json_schema_extra={"access_level": SettingAccessLevel.READ_ONLY},
    )

    @field_validator('settings_dir', 'cache_dir', mode='before')
    @classmethod
    def validate_dir(cls, v):
        """Resolve a directory path. Always return a Path object.

        Args:
            v (str or Path): The input value for the directory.

        Returns:
            Path: The resolved Path object.

        Raises:
            TypeError: If the input is not a str or Path.
        """
        if isinstance(v, Path):
            return v
        if isinstance(v, str):
            if os.path.isabs(v):
                return Path(v)
            else:
                return Path.home() / v
        raise TypeError(f"directory must be a str or Path, got {type(v)}")

    class Config:
        extra = "forbid"
