"""Customer de-duplication by natural key."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Iterable, Sequence

from ...models.domain import Customer
from ..identity import customer_natural_key

NOTES_SEPARATOR = "; "

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def group_by_natural_key(customers: Iterable[Customer]) -> list[list[Customer]]:
    """Group customers by ``lower(contactPerson)|phone``, groups in first-seen order."""
    groups: dict[str, list[Customer]] = {}
    for customer in customers:
        key = customer_natural_key(customer.contact_person, customer.phone)
        groups.setdefault(key, []).append(customer)
    return list(groups.values())


def find_duplicate_groups(customers: Iterable[Customer]) -> list[list[Customer]]:
    return [group for group in group_by_natural_key(customers) if len(group) > 1]


def _longest(values: Iterable[str]) -> str:
    longest = ""
    for value in values:
        value = (value or "").strip()
        if len(value) > len(longest):
            longest = value
    return longest


def _merge_notes(customers: Sequence[Customer]) -> str:
    fragments: list[str] = []
    for customer in customers:
        for fragment in (customer.notes or "").split(NOTES_SEPARATOR):
            fragment = fragment.strip()
            if fragment and fragment not in fragments:
                fragments.append(fragment)
    return NOTES_SEPARATOR.join(fragments)


def merge_group(group: Sequence[Customer]) -> Customer:
    """Fold a group sharing one natural key into its most recently created record."""
    if len(group) == 1:
        return group[0]

    ordered = sorted(group, key=lambda customer: customer.created_at or _OLDEST, reverse=True)
    base = ordered[0]
    delivery_dates = [c.last_delivery_date for c in ordered if c.last_delivery_date is not None]
    updated = [c.updated_at for c in ordered if c.updated_at is not None]

    return dataclasses.replace(
        base,
        bookings_count=sum(c.bookings_count for c in ordered),
        last_delivery_date=max(delivery_dates) if delivery_dates else None,
        notes=_merge_notes(ordered),
        address=_longest(c.address for c in ordered),
        email=_longest(c.email for c in ordered),
        updated_at=max(updated) if updated else base.updated_at,
    )


def merge_duplicates(customers: Iterable[Customer]) -> list[Customer]:
    """Return one record per natural key.

    Total rather than incremental, and idempotent: merging an already
    merged list returns it unchanged.
    """
    return [merge_group(group) for group in group_by_natural_key(customers)]
