"""Delivery lifecycle helpers."""

from .bookings import book_delivery
from .lifecycle import DeliveryLifecycleManager, validate_delivery

__all__ = ["DeliveryLifecycleManager", "book_delivery", "validate_delivery"]
