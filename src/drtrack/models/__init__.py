"""Domain model and error types."""

from .domain import (
    ContactDetails,
    CostItem,
    Customer,
    Delivery,
    DeliveryStatus,
    PendingCompletion,
    ProofOfDelivery,
)
from .results import (
    CompletionResult,
    DeliveryTrackingError,
    EmptySignatureError,
    NotFoundError,
    OperationResult,
    PartialCompletionError,
    RemoteUnavailable,
    ValidationError,
)

__all__ = [
    "ContactDetails",
    "CostItem",
    "Customer",
    "Delivery",
    "DeliveryStatus",
    "PendingCompletion",
    "ProofOfDelivery",
    "CompletionResult",
    "DeliveryTrackingError",
    "EmptySignatureError",
    "NotFoundError",
    "OperationResult",
    "PartialCompletionError",
    "RemoteUnavailable",
    "ValidationError",
]
