"""Structured logging for the chat client.

Log records from structlog and from the standard library share one processor
chain and are rendered either as JSON lines or as console output. Every
record logged while a conversation turn is in flight carries that turn's
correlation id, which is also sent to the backend as ``X-Request-ID``.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TextIO

import structlog

# Id of the conversation turn being streamed, if any
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_NOISY_LOGGERS = ("httpx", "httpcore")


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Processor that tags a record with the current turn's correlation id."""
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


@contextmanager
def turn_context(correlation_id: str) -> Iterator[None]:
    """Scope ``correlation_id`` to the records and requests of one turn."""
    token = correlation_id_ctx.set(correlation_id)
    try:
        yield
    finally:
        correlation_id_ctx.reset(token)


def _renderer(json_output: bool, stream: TextIO) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(log_level: str, json_output: bool = False, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        log_level: Root level name (``DEBUG``, ``INFO``, ...).
        json_output: Render JSON lines instead of console output.
        stream: Destination, standard error by default. Standard output is
            reserved for the transcript.
    """
    stream = stream or sys.stderr
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output, stream),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Quiet the HTTP stack
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)
