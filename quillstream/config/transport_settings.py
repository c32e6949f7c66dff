"""Settings for the query service transport.

Contains the endpoint of the streaming query service and the routing/auth
fields forwarded untouched with every request.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .settings_access_level import SettingAccessLevel


def _optional_float_from_env(name: str) -> Optional[float]:
    value = os.environ.get(name)
    return float(value) if value else None


class TransportSettings(BaseModel):
    """Settings for reaching the streaming query service."""

    endpoint: str = Field(
        default_factory=lambda: os.environ.get(
            "QUILLSTREAM_ENDPOINT", "http://localhost:5002/api/contentstack/query-stream"
        ),
        description="URL of the streaming query endpoint.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    connect_timeout: float = Field(
        default_factory=lambda: float(os.environ.get("QUILLSTREAM_CONNECT_TIMEOUT", 10.0)),
        gt=0.0,
        description="Timeout in seconds for establishing the connection to the query service.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    read_timeout: Optional[float] = Field(
        default_factory=lambda: _optional_float_from_env("QUILLSTREAM_READ_TIMEOUT"),
        description="Maximum time in seconds to wait for the next chunk of the stream. If None, the stream may stay silent indefinitely.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    tenant_id: Optional[str] = Field(
        default_factory=lambda: os.environ.get("QUILLSTREAM_TENANT_ID"),
        description="Tenant identifier forwarded with each query.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    project_id: Optional[str] = Field(
        default_factory=lambda: os.environ.get("QUILLSTREAM_PROJECT_ID"),
        description="Project identifier forwarded with each query.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    api_key: Optional[str] = Field(
        default_factory=lambda: os.environ.get("QUILLSTREAM_API_KEY"),
        description="API key forwarded with each query.",
        json_schema_extra={"access_level": SettingAccessLevel.PROTECTED},
    )

    provider: str = Field(
        default_factory=lambda: os.environ.get("QUILLSTREAM_PROVIDER", "groq"),
        description="LLM provider the query service should use.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    model: str = Field(
        default_factory=lambda: os.environ.get("QUILLSTREAM_MODEL", "llama-3.1-8b-instant"),
        description="LLM the query service should use.",
        json_schema_extra={"access_level": SettingAccessLevel.NORMAL},
    )

    @field_validator("read_timeout")
    @classmethod
    def _positive_or_none(cls, v):
        if v is not None and v <= 0.0:
            raise ValueError("Value must be positive or None")
        return v

    class Config:
        extra = "forbid"
