"""Application settings and configuration.

This module provides Pydantic settings classes for the client, loaded from
environment variables with support for nested configuration
(e.g. ``API__URL``, ``LOGGING__LEVEL``).
"""

import logging
from pathlib import Path

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

from agent_workflow_client.platform.clients.chat.config import ChatClientConfig


class ApiSettings(BaseModel):
    url: str = Field("http://localhost:8000/api")
    timeout_seconds: float = Field(60.0, gt=0)
    read_timeout_seconds: float = Field(300.0, gt=0)


class LoggingSettings(BaseModel):
    level: str = Field("INFO")
    json_output: bool = Field(False, description="True=JSON lines, False=console")

    @field_validator("level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class PreferencesSettings(BaseModel):
    path: Path = Field(Path("~/.config/agent-workflow-client/preferences.json"))


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    api: ApiSettings = ApiSettings()
    logging: LoggingSettings = LoggingSettings()
    preferences: PreferencesSettings = PreferencesSettings()

    # Forwarded to the backend as the request's debug flag
    debug: bool = False

    def chat_client_config(self) -> ChatClientConfig:
        """Build the chat client configuration from these settings."""
        return ChatClientConfig(
            timeout_seconds=self.api.timeout_seconds,
            read_timeout_seconds=self.api.read_timeout_seconds,
            debug=self.debug,
        )
