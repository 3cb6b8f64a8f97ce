"""Prometheus metrics for chat streams.

Counts typed events per kind and records the outcome and duration of each
stream consumed by the dispatch loop.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from time import monotonic
from typing import NamedTuple

import prometheus_client

BUCKETS = (
    # these are log spaced with 1 sig-fig rounding so there are 3 per decade
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    50,
    100,
    200,
    500,
    float("inf"),
)


class StreamOutcome(StrEnum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class EventLabels(NamedTuple):
    event_type: str


class StreamLabels(NamedTuple):
    outcome: str


STREAM_EVENTS = prometheus_client.Counter(
    "chat_stream_events_total",
    "Typed events received from the chat stream",
    EventLabels._fields,
)

STREAM_OUTCOMES = prometheus_client.Counter(
    "chat_streams_total",
    "Chat streams consumed, by how they ended",
    StreamLabels._fields,
)

STREAM_DURATION = prometheus_client.Histogram(
    "chat_stream_duration_seconds",
    "Wall time from opening a chat stream until it ended",
    StreamLabels._fields,
    buckets=BUCKETS,
)


def record_event(event_type: str) -> None:
    """Count one typed event."""
    STREAM_EVENTS.labels(*EventLabels(event_type=event_type)).inc()


class StreamMetrics:
    """Mutable outcome holder yielded by ``collect_stream_metrics``."""

    def __init__(self) -> None:
        self.outcome = StreamOutcome.COMPLETED


@contextmanager
def collect_stream_metrics() -> Iterator[StreamMetrics]:
    """Record the outcome and duration of one stream.

    An exception escaping the block counts as ``failed`` unless the body
    already set a different outcome.

    Yields:
        A holder whose ``outcome`` the body may overwrite.
    """
    metrics = StreamMetrics()
    start = monotonic()
    try:
        yield metrics
    except BaseException:
        if metrics.outcome == StreamOutcome.COMPLETED:
            metrics.outcome = StreamOutcome.FAILED
        raise
    finally:
        labels = StreamLabels(outcome=metrics.outcome.value)
        STREAM_OUTCOMES.labels(*labels).inc()
        STREAM_DURATION.labels(*labels).observe(monotonic() - start)
