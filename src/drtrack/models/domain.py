"""Domain models for deliveries, customers and proof-of-delivery records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class DeliveryStatus(str, Enum):
    ACTIVE = "Active"
    IN_TRANSIT = "In Transit"
    ON_SCHEDULE = "On Schedule"
    DELAYED = "Delayed"
    COMPLETED = "Completed"

    @classmethod
    def parse(cls, value: "DeliveryStatus | str") -> "DeliveryStatus":
        """Accept enum members, display labels ("In Transit") or compact names ("InTransit")."""
        if isinstance(value, cls):
            return value
        compact = str(value).replace(" ", "").replace("_", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == compact:
                return member
        # Legacy rows used "Signed" for deliveries closed out with an e-signature
        if compact == "signed":
            return cls.COMPLETED
        raise ValueError(f"Unknown delivery status '{value}'")


@dataclass(slots=True)
class CostItem:
    description: str
    amount: float


@dataclass(slots=True)
class Delivery:
    """One booked shipment, identified by its DR number."""

    dr_number: str
    customer_name: str
    customer_contact: str = ""
    origin: str = ""
    destination: str = ""
    truck_plate: str = ""
    distance_km: float = 0.0
    additional_costs: list[CostItem] = field(default_factory=list)
    status: DeliveryStatus = DeliveryStatus.ACTIVE
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status is DeliveryStatus.COMPLETED

    @property
    def total_additional_costs(self) -> float:
        return sum(item.amount for item in self.additional_costs)


@dataclass(slots=True)
class Customer:
    """Canonical identity for a contact used across deliveries."""

    contact_person: str
    phone: str
    address: str = ""
    email: str = ""
    status: str = "active"
    notes: str = ""
    bookings_count: int = 0
    last_delivery_date: Optional[date] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class ContactDetails:
    """Handoff details captured alongside a signature."""

    customer_name: str = ""
    customer_contact: str = ""
    truck_plate: str = ""
    origin: str = ""
    destination: str = ""


@dataclass(slots=True)
class ProofOfDelivery:
    """Signed artifact closing out a delivery. At most one per DR number."""

    dr_number: str
    signature_image: str
    signed_at: datetime
    customer_name: str = ""
    customer_contact: str = ""
    truck_plate: str = ""
    origin: str = ""
    destination: str = ""
    status: str = "Completed"
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class PendingCompletion:
    """A proof was saved but the delivery has not been moved to history yet."""

    dr_number: str
    recorded_at: datetime
    attempts: int = 0
    last_error: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
