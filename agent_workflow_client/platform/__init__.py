"""Client platform infrastructure.

This module provides the infrastructure the conversation layer builds on:
- Settings loaded from the environment
- Structured logging and stream metrics
- The chat backend client (streaming transport and catalog lookup)
- User preference persistence
"""

from agent_workflow_client.platform.clients.chat import ChatClient, ChatClientConfig, ChatParams
from agent_workflow_client.platform.preferences import (
    InputPreferences,
    JsonFilePreferencesStore,
    PreferencesStore,
)
from agent_workflow_client.platform.settings import Settings

__all__ = [
    "ChatClient",
    "ChatClientConfig",
    "ChatParams",
    "InputPreferences",
    "JsonFilePreferencesStore",
    "PreferencesStore",
    "Settings",
]
