"""Booking a delivery and counting it against its customer."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from ...models.domain import Customer, Delivery, DeliveryStatus
from ..customers.service import CustomerService
from .lifecycle import DeliveryLifecycleManager

logger = logging.getLogger(__name__)


async def book_delivery(
    deliveries: DeliveryLifecycleManager,
    customers: CustomerService,
    delivery: Delivery,
) -> tuple[Delivery, Optional[Customer]]:
    """Save a new active delivery, then auto-create or bump the customer it names.

    Bookings without a contact number are saved without touching customers.
    """
    booked = await deliveries.save(dataclasses.replace(delivery, status=DeliveryStatus.ACTIVE, completed_at=None))
    if not booked.customer_contact:
        logger.warning(f"DR {booked.dr_number} has no customer contact; skipping customer auto-create")
        return booked, None
    customer = await customers.auto_create(booked.customer_name, booked.customer_contact, booked.destination)
    return booked, customer
