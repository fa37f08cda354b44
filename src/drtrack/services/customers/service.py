"""Customer persistence, auto-creation from bookings and duplicate merging."""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Iterable, Optional

from ...config import settings
from ...models.domain import Customer
from ...models.results import ValidationError
from ...persistence.collections import CUSTOMERS
from ...persistence.gateway import PersistenceGateway
from ...persistence.serialization import customer_from_record, customer_to_record, utcnow
from ..cache import ReadCache
from ..events import EventHub
from ..identity import customer_key, resolve
from .dedup import find_duplicate_groups, merge_duplicates

logger = logging.getLogger(__name__)

CUSTOMER_STATUSES = ("active", "inactive")
AUTO_CREATED_NOTE = "Auto-created from delivery booking"

_PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_customer(customer: Customer) -> list[str]:
    errors: list[str] = []
    if not customer.contact_person.strip():
        errors.append("Customer name is required")
    if not customer.phone.strip():
        errors.append("Phone number is required")
    elif not _PHONE_PATTERN.match(customer.phone):
        errors.append("Phone number contains invalid characters")
    if customer.email and not _EMAIL_PATTERN.match(customer.email):
        errors.append("Email must be a valid email address")
    if customer.status not in CUSTOMER_STATUSES:
        errors.append(f"Status must be one of: {', '.join(CUSTOMER_STATUSES)}")
    if not isinstance(customer.bookings_count, int) or customer.bookings_count < 0:
        errors.append("Bookings count must be a non-negative integer")
    return errors


class CustomerService:
    def __init__(
        self,
        gateway: PersistenceGateway,
        events: EventHub | None = None,
        cache: ReadCache | None = None,
        id_prefix: str | None = None,
        id_width: int | None = None,
    ) -> None:
        self.gateway = gateway
        self.events = events or EventHub()
        self.cache = cache or ReadCache(settings.read_cache_ttl_seconds)
        self.id_prefix = id_prefix or settings.customer_id_prefix
        self.id_width = id_width or settings.customer_id_width
        # Ids handed out by this process, so overlapping creates never share one.
        self._issued_ids: set[str] = set()

    async def load_raw(self) -> list[Customer]:
        """Stored customers exactly as persisted, duplicates included."""
        customers: list[Customer] = []
        for record in await self.gateway.fetch_all(CUSTOMERS):
            try:
                customers.append(customer_from_record(record))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid customer record {record.get('id')}: {e}")
        return customers

    async def fetch_all(self) -> list[Customer]:
        """Customers with duplicates folded together (merge-on-read)."""
        cached = self.cache.get("customers:all")
        if cached is not None:
            return cached
        customers = merge_duplicates(await self.load_raw())
        self.cache.set("customers:all", customers)
        return customers

    async def save(self, customer: Customer) -> Customer:
        errors = validate_customer(customer)
        if errors:
            raise ValidationError("; ".join(errors), errors)

        existing_customers = await self.load_raw()
        existing = resolve(existing_customers, customer, customer_key)
        if existing is not None:
            customer = dataclasses.replace(customer, id=existing.id, created_at=existing.created_at)
        elif not customer.id:
            customer = dataclasses.replace(customer, id=self.next_customer_id(existing_customers))
        return await self._persist(customer)

    async def auto_create(self, name: str, phone: str, address: str = "") -> Customer:
        """Count a booking against the customer ``(name, phone)``, creating it on first sight.

        Lookup and write are separate suspension points, so two concurrent
        calls for a brand-new identity may both insert under distinct ids;
        the next ``merge_duplicates`` pass folds them back together.
        """
        if not (name or "").strip() or not (phone or "").strip():
            raise ValidationError("Customer name and phone are required to auto-create a customer")

        today = utcnow().date()
        existing_customers = await self.load_raw()
        probe = Customer(contact_person=name, phone=phone)
        existing = resolve(existing_customers, probe, customer_key)

        if existing is not None:
            updated = dataclasses.replace(
                existing,
                bookings_count=existing.bookings_count + 1,
                last_delivery_date=max(existing.last_delivery_date or today, today),
                address=existing.address or (address or "").strip(),
            )
            logger.info(f"Customer {existing.id} booking count is now {updated.bookings_count}")
            return await self._persist(updated)

        customer = Customer(
            id=self.next_customer_id(existing_customers),
            contact_person=name.strip(),
            phone=phone.strip(),
            address=(address or "").strip(),
            status="active",
            notes=AUTO_CREATED_NOTE,
            bookings_count=1,
            last_delivery_date=today,
        )
        logger.info(f"Auto-created customer {customer.id} for {customer.contact_person}")
        return await self._persist(customer)

    async def merge_duplicates(self) -> int:
        """Persist the merged view and drop absorbed records. Returns how many records were folded away."""
        raw = await self.load_raw()
        groups = find_duplicate_groups(raw)
        if not groups:
            return 0
        merged = merge_duplicates(raw)
        folded = len(raw) - len(merged)

        kept_ids = {customer.id for customer in merged}
        for customer in merged:
            if customer not in raw:
                await self.gateway.save(CUSTOMERS, customer_to_record(customer))
        for customer in raw:
            if customer.id and customer.id not in kept_ids:
                await self.gateway.remove(CUSTOMERS, customer.id)

        logger.info(f"Merged {len(groups)} duplicate customer groups: {len(raw)} -> {len(merged)}")
        self.cache.invalidate("customers")
        self.events.data_changed(CUSTOMERS)
        return folded

    def next_customer_id(self, existing: Iterable[Customer]) -> str:
        existing = list(existing)
        taken = {customer.id for customer in existing} | self._issued_ids
        number = len(existing) + 1
        candidate = self._format_id(number)
        while candidate in taken:
            number += 1
            candidate = self._format_id(number)
        self._issued_ids.add(candidate)
        return candidate

    def _format_id(self, number: int) -> str:
        return f"{self.id_prefix}{number:0{self.id_width}d}"

    async def _persist(self, customer: Customer) -> Customer:
        record = await self.gateway.save(CUSTOMERS, customer_to_record(customer))
        self.cache.invalidate("customers")
        self.events.data_changed(CUSTOMERS)
        return customer_from_record(record)

    async def get(self, customer_id: str) -> Optional[Customer]:
        for customer in await self.fetch_all():
            if customer.id == customer_id:
                return customer
        return None
