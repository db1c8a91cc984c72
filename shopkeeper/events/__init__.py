"""Shop event logging package."""

from shopkeeper.events.logger import EventLogger, create_correlation_id

__all__ = ["EventLogger", "create_correlation_id"]
