"""Logical collections and how each one maps onto local and remote storage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from ..models.domain import DeliveryStatus
from ..services.identity import NaturalKeyFn, customer_key, dr_number_key, is_uuid
from . import serialization

ACTIVE_DELIVERIES = "deliveries-active"
DELIVERY_HISTORY = "deliveries-history"
CUSTOMERS = "customers"
PROOF_OF_DELIVERY = "proof-of-delivery"
PENDING_COMPLETIONS = "pending-completions"


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    table: str
    key_field: str
    key_column: str
    fields: tuple[tuple[str, str], ...]
    natural_key: NaturalKeyFn
    id_shape: Optional[Callable[[str], bool]] = None
    # Extra remote filter narrowing a shared table to this collection, as (column, operator, value).
    scope: Optional[tuple[str, str, Any]] = None
    order_column: str = "created_at"
    # Newest-first collections; the rest keep insertion (oldest-first) order.
    prepend: bool = False
    row_encoder: Optional[Callable[[Mapping[str, Any]], dict[str, Any]]] = None

    def to_row(self, record: Mapping[str, Any]) -> dict[str, Any]:
        if self.row_encoder is not None:
            return self.row_encoder(record)
        return serialization.to_remote_row(record, self.fields)

    def from_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return serialization.from_remote_row(row, self.fields)

    def column_for(self, local_field: str) -> str:
        for local, remote in self.fields:
            if local == local_field:
                return remote
        raise KeyError(f"Collection '{self.name}' has no field '{local_field}'")


COLLECTIONS: dict[str, CollectionSpec] = {
    ACTIVE_DELIVERIES: CollectionSpec(
        name=ACTIVE_DELIVERIES,
        table="deliveries",
        key_field="drNumber",
        key_column="dr_number",
        fields=serialization.DELIVERY_FIELDS,
        natural_key=dr_number_key,
        id_shape=is_uuid,
        scope=("status", "neq", DeliveryStatus.COMPLETED.value),
    ),
    DELIVERY_HISTORY: CollectionSpec(
        name=DELIVERY_HISTORY,
        table="deliveries",
        key_field="drNumber",
        key_column="dr_number",
        fields=serialization.DELIVERY_FIELDS,
        natural_key=dr_number_key,
        id_shape=is_uuid,
        scope=("status", "eq", DeliveryStatus.COMPLETED.value),
        order_column="completed_at",
        prepend=True,
    ),
    CUSTOMERS: CollectionSpec(
        name=CUSTOMERS,
        table="customers",
        key_field="id",
        key_column="id",
        fields=serialization.CUSTOMER_FIELDS,
        natural_key=customer_key,
        row_encoder=serialization.customer_to_remote_row,
    ),
    PROOF_OF_DELIVERY: CollectionSpec(
        name=PROOF_OF_DELIVERY,
        table="epod_records",
        key_field="drNumber",
        key_column="dr_number",
        fields=serialization.PROOF_FIELDS,
        natural_key=dr_number_key,
        id_shape=is_uuid,
        order_column="signed_at",
        prepend=True,
    ),
    PENDING_COMPLETIONS: CollectionSpec(
        name=PENDING_COMPLETIONS,
        table="pending_completions",
        key_field="drNumber",
        key_column="dr_number",
        fields=serialization.PENDING_FIELDS,
        natural_key=dr_number_key,
        id_shape=is_uuid,
        order_column="recorded_at",
    ),
}
