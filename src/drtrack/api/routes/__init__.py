"""Route group exports."""

from . import customers, deliveries, epod, health, sync

__all__ = ["customers", "deliveries", "epod", "health", "sync"]
