"""Structured logging configuration using structlog.

Provides JSON output for production (parseable by ELK, Loki, CloudWatch)
and pretty console output for development.

A LogSink can be attached so every routing decision, cache hit/miss, retry
and failover also reaches in-process subscribers (debug consoles, the HTTP
layer) as a LogEvent. The sink is one-way: the gateway never reads it back.
"""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from inference_gateway.models.chat_models import LogEvent
from inference_gateway.models.enums import LogLevel


LogListener = Callable[[LogEvent], None]

# Keys that are rendering artefacts, not event details
_RESERVED_KEYS = frozenset(
    {"event", "level", "source", "timestamp", "logger", "app", "exc_info", "stack_info"}
)


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to all log events."""
    event_dict["app"] = "inference-gateway"
    return event_dict


class LogSink:
    """
    Bounded in-memory log sink with subscriber fan-out.

    Installed as a structlog processor; it never modifies the event dict.
    History is capped at ``max_events`` and returned newest first.
    """

    def __init__(self, max_events: int = 1000):
        self._events: deque[LogEvent] = deque(maxlen=max_events)
        self._listeners: list[LogListener] = []

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        level = str(event_dict.get("level", method_name)).upper()
        if level == "CRITICAL":
            level = LogLevel.ERROR.value
        if level not in LogLevel.__members__:
            level = LogLevel.INFO.value

        entry = LogEvent(
            timestamp=datetime.now(timezone.utc),
            level=LogLevel(level),
            message=str(event_dict.get("event", "")),
            source=str(event_dict.get("source", "System")),
            details={
                k: v for k, v in event_dict.items() if k not in _RESERVED_KEYS
            } or None,
        )
        self.emit(entry)
        return event_dict

    def emit(self, entry: LogEvent) -> None:
        self._events.append(entry)
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                # A broken subscriber must not break logging for everyone else
                pass

    def subscribe(self, listener: LogListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def history(self) -> list[LogEvent]:
        return list(reversed(self._events))

    def clear(self) -> None:
        self._events.clear()


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    sink: Optional[LogSink] = None,
) -> None:
    """Configure structlog for structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment name (development, production)
        sink: Optional LogSink that receives every event as a LogEvent

    In production mode:
        - JSON output for machine parsing
        - ISO timestamps
        - Exception info included

    In development mode:
        - Pretty colored console output
        - Human-readable formatting
    """
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)

    # Shared processors for all loggers
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]
    if sink is not None:
        shared_processors.append(sink)

    is_production = environment.lower() == "production"

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging to work with structlog
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level_int)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level_int)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
        sink_attached=sink is not None,
    )
