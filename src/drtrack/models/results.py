"""Error taxonomy and operation results surfaced by the core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class DeliveryTrackingError(Exception):
    """Base class for errors raised by the delivery tracking core."""

    code = "error"


class RemoteUnavailable(DeliveryTrackingError):
    """The remote store could not answer. Always recovered by the gateway."""

    code = "remote_unavailable"


class NotFoundError(DeliveryTrackingError):
    code = "not_found"


class ValidationError(DeliveryTrackingError):
    code = "validation_error"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class EmptySignatureError(ValidationError):
    code = "empty_signature"

    def __init__(self, message: str = "Signature is required before a delivery can be completed") -> None:
        super().__init__(message)


class PartialCompletionError(DeliveryTrackingError):
    """Proof of delivery was saved, but the status transition failed."""

    code = "partial_completion"


@dataclass(slots=True)
class OperationResult:
    ok: bool
    message: str = ""
    error_code: Optional[str] = None
    data: Any = None

    @classmethod
    def success(cls, message: str = "", data: Any = None) -> "OperationResult":
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, error: DeliveryTrackingError) -> "OperationResult":
        return cls(ok=False, message=str(error), error_code=error.code)


@dataclass(slots=True)
class CompletionResult:
    """Per-step outcome of completing one delivery with a signature."""

    dr_number: str
    signature_valid: bool = False
    proof_saved: bool = False
    status_changed: bool = False
    cache_invalidated: bool = False
    views_notified: bool = False
    error_code: Optional[str] = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.proof_saved and self.status_changed and self.error_code is None

    @property
    def partial(self) -> bool:
        return self.proof_saved and not self.status_changed
