"""
Event Logger

Every significant action in the shop flow is logged as a structured event.
This provides:
1. Traceability of stock changes back to the record that caused them
2. Debugging capability for recovered AI failures
3. A correlation ID that follows one user action end to end

The event logger:
- Is synchronous; it never waits on I/O the core does not own
- Maps event severity to the log level
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from shopkeeper.models.events import EventSeverity, ShopEvent


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class EventLogger:
    """
    Central shop event logger.

    Keeps the last events in memory so the presentation layer can show
    what just happened (e.g. a low-stock warning after a sale).
    """

    def __init__(self, logger_name: str = "shopkeeper", history_size: int = 100):
        self._logger = structlog.get_logger(logger_name)
        self._history: list[ShopEvent] = []
        self._history_size = history_size

    def log(self, event: ShopEvent) -> None:
        """Log an event locally and keep it in the recent history."""
        log_dict = event.to_log_dict()

        if event.severity == EventSeverity.ERROR:
            self._logger.error("shop_event", **log_dict)
        elif event.severity == EventSeverity.WARNING:
            self._logger.warning("shop_event", **log_dict)
        elif event.severity == EventSeverity.DEBUG:
            self._logger.debug("shop_event", **log_dict)
        else:
            self._logger.info("shop_event", **log_dict)

        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]

    def log_many(self, events: list[ShopEvent]) -> None:
        for event in events:
            self.log(event)

    def recent_events(self, limit: int = 20) -> list[ShopEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history[-limit:]))

    def clear(self) -> None:
        self._history.clear()


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a receipt scan).
    Pass it through all subsequent operations.
    """
    return uuid4()
