"""Mapping between domain objects, local cache records and remote rows.

Domain objects (dataclasses) are the only shape business logic sees.
Two storage shapes exist:

* local cache records - camelCase JSON objects (``drNumber``, ``customerName``)
* remote rows - snake_case Supabase columns (``dr_number``, ``customer_name``)

Decoders accept either spelling because legacy rows carry both; encoders
write exactly one.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from ..models.domain import (
    CostItem,
    Customer,
    Delivery,
    DeliveryStatus,
    PendingCompletion,
    ProofOfDelivery,
)

Record = dict[str, Any]

_LEGACY_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%m/%d/%Y")

# (local camelCase, remote snake_case) pairs; order is the column order written.
DELIVERY_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("drNumber", "dr_number"),
    ("customerName", "customer_name"),
    ("customerContact", "vendor_number"),
    ("origin", "origin"),
    ("destination", "destination"),
    ("truckPlate", "truck_plate_number"),
    ("distanceKm", "distance"),
    ("additionalCosts", "additional_cost_items"),
    ("status", "status"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
    ("completedAt", "completed_at"),
)

CUSTOMER_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("contactPerson", "contact_person"),
    ("phone", "phone"),
    ("address", "address"),
    ("email", "email"),
    ("status", "status"),
    ("notes", "notes"),
    ("bookingsCount", "bookings_count"),
    ("lastDeliveryDate", "last_delivery"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

PROOF_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("drNumber", "dr_number"),
    ("customerName", "customer_name"),
    ("customerContact", "customer_contact"),
    ("truckPlate", "truck_plate"),
    ("origin", "origin"),
    ("destination", "destination"),
    ("signatureImage", "signature_data"),
    ("status", "status"),
    ("signedAt", "signed_at"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

PENDING_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("drNumber", "dr_number"),
    ("recordedAt", "recorded_at"),
    ("attempts", "attempts"),
    ("lastError", "last_error"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

# Extra spellings seen in rows written by older clients.
_LEGACY_ALIASES: dict[str, tuple[str, ...]] = {
    "customerContact": ("vendorNumber", "customer_contact", "contact"),
    "truckPlate": ("truckPlateNumber", "truck_plate"),
    "distanceKm": ("distance_km",),
    "additionalCosts": ("additionalCostItems", "additional_costs"),
    "completedAt": ("completedDateTime", "completed_date_time", "completed_date"),
    "contactPerson": ("name",),
    "lastDeliveryDate": ("lastDelivery", "last_delivery_date"),
    "signatureImage": ("signature", "signatureData", "signature_image"),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings (``Z`` suffix allowed) and legacy ``Oct 19, 2026`` dates."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
            for fmt in _LEGACY_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            if parsed is None:
                raise ValueError(f"Unable to parse timestamp from value '{value}'")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def _pick(data: Mapping[str, Any], local_name: str, remote_name: str | None = None, default: Any = None) -> Any:
    names = [local_name]
    if remote_name:
        names.append(remote_name)
    names.extend(_LEGACY_ALIASES.get(local_name, ()))
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _float(value: Any, field_name: str) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse {field_name} from value '{value}'") from exc


def normalize_record(data: Mapping[str, Any], fields: Iterable[tuple[str, str]]) -> Record:
    """Fold any accepted spelling of each field onto its local camelCase key."""
    return {local: _pick(data, local, remote) for local, remote in fields}


def to_remote_row(record: Mapping[str, Any], fields: Iterable[tuple[str, str]]) -> Record:
    row: Record = {}
    for local, remote in fields:
        if local in record and record[local] is not None:
            row[remote] = record[local]
    return row


def from_remote_row(row: Mapping[str, Any], fields: Iterable[tuple[str, str]]) -> Record:
    return normalize_record(row, fields)


# Deliveries


def _cost_items_from(value: Any) -> list[CostItem]:
    items: list[CostItem] = []
    for raw in value or []:
        if isinstance(raw, CostItem):
            items.append(raw)
            continue
        items.append(
            CostItem(
                description=_text(raw.get("description")) or "Unknown Cost",
                amount=_float(raw.get("amount"), "cost amount"),
            )
        )
    return items


def delivery_to_record(delivery: Delivery) -> Record:
    return {
        "id": delivery.id,
        "drNumber": delivery.dr_number,
        "customerName": delivery.customer_name,
        "customerContact": delivery.customer_contact,
        "origin": delivery.origin,
        "destination": delivery.destination,
        "truckPlate": delivery.truck_plate,
        "distanceKm": delivery.distance_km,
        "additionalCosts": [
            {"description": item.description, "amount": item.amount} for item in delivery.additional_costs
        ],
        "status": delivery.status.value,
        "createdAt": format_datetime(delivery.created_at),
        "updatedAt": format_datetime(delivery.updated_at),
        "completedAt": format_datetime(delivery.completed_at),
    }


def delivery_from_record(data: Mapping[str, Any]) -> Delivery:
    record = normalize_record(data, DELIVERY_FIELDS)
    return Delivery(
        id=record["id"],
        dr_number=_text(record["drNumber"]),
        customer_name=_text(record["customerName"]),
        customer_contact=_text(record["customerContact"]),
        origin=_text(record["origin"]),
        destination=_text(record["destination"]),
        truck_plate=_text(record["truckPlate"]),
        distance_km=_float(record["distanceKm"], "distance"),
        additional_costs=_cost_items_from(record["additionalCosts"]),
        status=DeliveryStatus.parse(record["status"] or DeliveryStatus.ACTIVE),
        created_at=parse_datetime(record["createdAt"]),
        updated_at=parse_datetime(record["updatedAt"]),
        completed_at=parse_datetime(record["completedAt"]),
    )


# Customers


def customer_to_record(customer: Customer) -> Record:
    return {
        "id": customer.id,
        "contactPerson": customer.contact_person,
        "phone": customer.phone,
        "address": customer.address,
        "email": customer.email,
        "status": customer.status,
        "notes": customer.notes,
        "bookingsCount": customer.bookings_count,
        "lastDeliveryDate": customer.last_delivery_date.isoformat() if customer.last_delivery_date else None,
        "createdAt": format_datetime(customer.created_at),
        "updatedAt": format_datetime(customer.updated_at),
    }


def customer_from_record(data: Mapping[str, Any]) -> Customer:
    record = normalize_record(data, CUSTOMER_FIELDS)
    return Customer(
        id=record["id"],
        contact_person=_text(record["contactPerson"]),
        phone=_text(record["phone"]),
        address=_text(record["address"]),
        email=_text(record["email"]),
        status=_text(record["status"]) or "active",
        notes=_text(record["notes"]),
        bookings_count=int(record["bookingsCount"] or 0),
        last_delivery_date=parse_date(record["lastDeliveryDate"]),
        created_at=parse_datetime(record["createdAt"]),
        updated_at=parse_datetime(record["updatedAt"]),
    )


def customer_to_remote_row(record: Mapping[str, Any]) -> Record:
    row = to_remote_row(record, CUSTOMER_FIELDS)
    # The customers table keeps a required display ``name`` column next to contact_person.
    if "contact_person" in row:
        row["name"] = row["contact_person"]
    return row


# Proof of delivery


def proof_to_record(proof: ProofOfDelivery) -> Record:
    return {
        "id": proof.id,
        "drNumber": proof.dr_number,
        "customerName": proof.customer_name,
        "customerContact": proof.customer_contact,
        "truckPlate": proof.truck_plate,
        "origin": proof.origin,
        "destination": proof.destination,
        "signatureImage": proof.signature_image,
        "status": proof.status,
        "signedAt": format_datetime(proof.signed_at),
        "createdAt": format_datetime(proof.created_at),
        "updatedAt": format_datetime(proof.updated_at),
    }


def proof_from_record(data: Mapping[str, Any]) -> ProofOfDelivery:
    record = normalize_record(data, PROOF_FIELDS)
    return ProofOfDelivery(
        id=record["id"],
        dr_number=_text(record["drNumber"]),
        customer_name=_text(record["customerName"]),
        customer_contact=_text(record["customerContact"]),
        truck_plate=_text(record["truckPlate"]),
        origin=_text(record["origin"]),
        destination=_text(record["destination"]),
        signature_image=record["signatureImage"] or "",
        status="Completed",
        signed_at=parse_datetime(record["signedAt"]) or utcnow(),
        created_at=parse_datetime(record["createdAt"]),
        updated_at=parse_datetime(record["updatedAt"]),
    )


# Pending completions


def pending_to_record(pending: PendingCompletion) -> Record:
    return {
        "id": pending.id,
        "drNumber": pending.dr_number,
        "recordedAt": format_datetime(pending.recorded_at),
        "attempts": pending.attempts,
        "lastError": pending.last_error,
        "createdAt": format_datetime(pending.created_at),
        "updatedAt": format_datetime(pending.updated_at),
    }


def pending_from_record(data: Mapping[str, Any]) -> PendingCompletion:
    record = normalize_record(data, PENDING_FIELDS)
    return PendingCompletion(
        id=record["id"],
        dr_number=_text(record["drNumber"]),
        recorded_at=parse_datetime(record["recordedAt"]) or utcnow(),
        attempts=int(record["attempts"] or 0),
        last_error=record["lastError"],
        created_at=parse_datetime(record["createdAt"]),
        updated_at=parse_datetime(record["updatedAt"]),
    )
