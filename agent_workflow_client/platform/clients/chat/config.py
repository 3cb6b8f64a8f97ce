"""Configuration for the chat stream client.

This module provides the frozen configuration dataclass for the chat client,
including timeouts, endpoint paths and catalog retry behavior.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChatClientConfig:
    """Configuration for a chat client instance.

    Attributes:
        timeout_seconds: Connect/write/pool timeout for HTTP requests (default: 60s).
        read_timeout_seconds: Maximum silence between stream chunks (default: 300s).
        stream_path: Path of the streaming chat endpoint, relative to the base URL.
        team_members_path: Path of the team member catalog endpoint.
        catalog_max_attempts: Attempts for the catalog lookup before giving up (default: 3).
        catalog_retry_wait_seconds: Fixed wait between catalog attempts (default: 1.0s).
        debug: Ask the backend for debug output in streamed responses.
    """

    timeout_seconds: float = 60.0
    read_timeout_seconds: float = 300.0
    stream_path: str = "/chat/stream"
    team_members_path: str = "/team_members"
    catalog_max_attempts: int = 3
    catalog_retry_wait_seconds: float = 1.0
    debug: bool = False
