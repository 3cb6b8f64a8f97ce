"""Observability infrastructure module.

This module provides monitoring for the chat client:
- Structured logging with correlation IDs
- Prometheus stream metrics
"""

from agent_workflow_client.platform.observability.logging import (
    configure_logging,
    correlation_id_ctx,
    get_logger,
    turn_context,
)
from agent_workflow_client.platform.observability.metrics import (
    BUCKETS,
    StreamOutcome,
    collect_stream_metrics,
    record_event,
)

__all__ = [
    "BUCKETS",
    "StreamOutcome",
    "collect_stream_metrics",
    "configure_logging",
    "correlation_id_ctx",
    "get_logger",
    "record_event",
    "turn_context",
]
