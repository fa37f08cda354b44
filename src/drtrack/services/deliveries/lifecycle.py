"""Delivery state machine and active/history collection membership."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from ...config import settings
from ...models.domain import Delivery, DeliveryStatus
from ...models.results import NotFoundError, OperationResult, ValidationError
from ...persistence.collections import ACTIVE_DELIVERIES, DELIVERY_HISTORY
from ...persistence.gateway import PersistenceGateway
from ...persistence.serialization import delivery_from_record, delivery_to_record, utcnow
from ..cache import ReadCache
from ..events import EventHub
from ..identity import dr_number_key, is_uuid, resolve

logger = logging.getLogger(__name__)


def validate_delivery(delivery: Delivery) -> list[str]:
    errors: list[str] = []
    if not delivery.dr_number.strip():
        errors.append("DR number is required")
    if not delivery.customer_name.strip():
        errors.append("Customer name is required")
    if delivery.distance_km < 0:
        errors.append("Distance must be zero or greater")
    for index, item in enumerate(delivery.additional_costs, start=1):
        if not item.description.strip():
            errors.append(f"Additional cost item {index}: description is required")
        if item.amount < 0:
            errors.append(f"Additional cost item {index}: amount must be zero or greater")
    return errors


class DeliveryLifecycleManager:
    """Owns every move of a delivery between the active and history collections."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        events: EventHub | None = None,
        cache: ReadCache | None = None,
    ) -> None:
        self.gateway = gateway
        self.events = events or EventHub()
        self.cache = cache or ReadCache(settings.read_cache_ttl_seconds)

    async def _load(self, collection: str) -> list[Delivery]:
        cache_key = f"deliveries:{collection}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        deliveries: list[Delivery] = []
        for record in await self.gateway.fetch_all(collection):
            try:
                deliveries.append(delivery_from_record(record))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid delivery record in {collection}: {e}")
        self.cache.set(cache_key, deliveries)
        return deliveries

    async def active(self) -> list[Delivery]:
        return await self._load(ACTIVE_DELIVERIES)

    async def history(self) -> list[Delivery]:
        return await self._load(DELIVERY_HISTORY)

    async def fetch_all(self, status: DeliveryStatus | str | None = None) -> list[Delivery]:
        if status is None:
            return [*await self.active(), *await self.history()]
        status = DeliveryStatus.parse(status)
        if status is DeliveryStatus.COMPLETED:
            return await self.history()
        return [delivery for delivery in await self.active() if delivery.status is status]

    async def find(self, dr_number: str) -> Optional[Delivery]:
        probe = {"drNumber": dr_number}
        return resolve(await self.active(), probe, dr_number_key) or resolve(await self.history(), probe, dr_number_key)

    async def save(self, delivery: Delivery) -> Delivery:
        """Create or update an active delivery, matched by DR number."""
        errors = validate_delivery(delivery)
        if delivery.is_completed:
            errors.append("Deliveries can only be completed through a status transition")
        if errors:
            raise ValidationError("; ".join(errors), errors)

        delivery = dataclasses.replace(delivery, dr_number=delivery.dr_number.strip())
        if resolve(await self.history(), delivery, dr_number_key) is not None:
            raise ValidationError(f"DR {delivery.dr_number} is already completed")

        existing = resolve(await self.active(), delivery, dr_number_key, is_uuid)
        if existing is not None:
            delivery = dataclasses.replace(delivery, id=existing.id, created_at=existing.created_at)
            logger.info(f"DR {delivery.dr_number} already booked, updating existing record")

        record = await self.gateway.save(ACTIVE_DELIVERIES, delivery_to_record(delivery))
        self._changed(ACTIVE_DELIVERIES)
        return delivery_from_record(record)

    async def set_status(self, dr_number: str, new_status: DeliveryStatus | str) -> OperationResult:
        try:
            status = DeliveryStatus.parse(new_status)
        except ValueError as e:
            return OperationResult.failure(ValidationError(str(e)))

        probe = {"drNumber": dr_number}
        current = resolve(await self.active(), probe, dr_number_key)
        if current is None:
            if status is DeliveryStatus.COMPLETED:
                completed = resolve(await self.history(), probe, dr_number_key)
                if completed is not None:
                    return OperationResult.success(f"DR {dr_number} is already completed", data=completed)
            return OperationResult.failure(NotFoundError(f"DR {dr_number} is not an active delivery"))

        if status is DeliveryStatus.COMPLETED:
            return await self._move_to_history(current)

        if current.status is status:
            return OperationResult.success(f"DR {dr_number} is already {status.value}", data=current)

        updated = dataclasses.replace(current, status=status)
        record = await self.gateway.save(ACTIVE_DELIVERIES, delivery_to_record(updated))
        logger.info(f"DR {dr_number} status {current.status.value} -> {status.value}")
        self._changed(ACTIVE_DELIVERIES)
        return OperationResult.success(f"DR {dr_number} is now {status.value}", data=delivery_from_record(record))

    async def _move_to_history(self, delivery: Delivery) -> OperationResult:
        completed = dataclasses.replace(
            delivery,
            status=DeliveryStatus.COMPLETED,
            completed_at=delivery.completed_at or utcnow(),
        )
        record = await self.gateway.save(DELIVERY_HISTORY, delivery_to_record(completed))
        # A crash between these two writes leaves the DR in both collections; repair_collections heals it.
        await self.gateway.remove(ACTIVE_DELIVERIES, delivery.dr_number)
        logger.info(f"DR {delivery.dr_number} completed and moved to history")
        self._changed(ACTIVE_DELIVERIES, DELIVERY_HISTORY)
        return OperationResult.success(f"DR {delivery.dr_number} completed", data=delivery_from_record(record))

    async def repair_collections(self) -> list[str]:
        """Remove from active any DR already present in history. Returns the repaired DR numbers."""
        completed = {delivery.dr_number for delivery in await self.history()}
        repaired: list[str] = []
        for delivery in await self.active():
            if delivery.dr_number in completed:
                await self.gateway.remove(ACTIVE_DELIVERIES, delivery.dr_number)
                repaired.append(delivery.dr_number)
        if repaired:
            logger.warning(f"Removed {len(repaired)} completed deliveries left in the active list: {repaired}")
            self._changed(ACTIVE_DELIVERIES)
        return repaired

    async def remove_active(self, dr_number: str) -> bool:
        """Drop a booking that never shipped. History is append-only and is never touched."""
        removed = await self.gateway.remove(ACTIVE_DELIVERIES, dr_number)
        if removed:
            self._changed(ACTIVE_DELIVERIES)
        return removed

    def invalidate(self) -> int:
        return self.cache.invalidate("deliveries")

    def _changed(self, *collections: str) -> None:
        self.invalidate()
        self.events.data_changed(*collections)
