"""Proof-of-delivery completion workflow."""

from __future__ import annotations

import base64
import logging
from typing import Iterable, Optional

from ...models.domain import ContactDetails, Delivery, DeliveryStatus, PendingCompletion, ProofOfDelivery
from ...models.results import CompletionResult, EmptySignatureError, PartialCompletionError, ValidationError
from ...persistence.collections import (
    ACTIVE_DELIVERIES,
    DELIVERY_HISTORY,
    PENDING_COMPLETIONS,
    PROOF_OF_DELIVERY,
)
from ...persistence.gateway import PersistenceGateway
from ...persistence.serialization import (
    pending_from_record,
    pending_to_record,
    proof_from_record,
    proof_to_record,
    utcnow,
)
from ..deliveries.lifecycle import DeliveryLifecycleManager
from ..events import EventHub
from ..identity import dr_number_key, resolve

logger = logging.getLogger(__name__)

DASHBOARD_VIEW = "dashboard"


def encode_signature(signature: bytes | str | None) -> str:
    """Return the signature as text, base64-encoding raw image bytes. Empty input yields ``""``."""
    if signature is None:
        return ""
    if isinstance(signature, (bytes, bytearray)):
        if not signature:
            return ""
        return "data:image/png;base64," + base64.b64encode(bytes(signature)).decode("ascii")
    text = signature.strip()
    if text.startswith("data:") and text.partition(",")[2].strip() == "":
        return ""
    return text


def build_proof(
    dr_number: str,
    signature: str,
    details: ContactDetails,
    delivery: Optional[Delivery] = None,
) -> ProofOfDelivery:
    """Handoff details from the signing form win; gaps are filled from the delivery record."""

    def pick(value: str, fallback: str) -> str:
        return (value or "").strip() or fallback

    return ProofOfDelivery(
        dr_number=dr_number,
        signature_image=signature,
        signed_at=utcnow(),
        customer_name=pick(details.customer_name, delivery.customer_name if delivery else ""),
        customer_contact=pick(details.customer_contact, delivery.customer_contact if delivery else ""),
        truck_plate=pick(details.truck_plate, delivery.truck_plate if delivery else ""),
        origin=pick(details.origin, delivery.origin if delivery else ""),
        destination=pick(details.destination, delivery.destination if delivery else ""),
    )


class CompletionWorkflow:
    """Signature -> proof record -> Completed -> cache invalidation -> view refresh.

    The proof write and the status transition are two separate writes with
    no shared transaction. A ``PendingCompletion`` marker is kept between
    them so ``reconcile_pending`` can retry the status step.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        deliveries: DeliveryLifecycleManager,
        events: EventHub | None = None,
    ) -> None:
        self.gateway = gateway
        self.deliveries = deliveries
        self.events = events or deliveries.events

    async def complete(
        self,
        dr_number: str,
        signature_image: bytes | str | None,
        details: ContactDetails | None = None,
    ) -> CompletionResult:
        dr_number = (dr_number or "").strip()
        result = CompletionResult(dr_number=dr_number)

        if not dr_number:
            error = ValidationError("DR number is required to complete a delivery")
            result.error_code = error.code
            result.message = str(error)
            self.events.notify(result.message, "warning")
            return result

        signature = encode_signature(signature_image)
        if not signature:
            error = EmptySignatureError()
            result.error_code = error.code
            result.message = str(error)
            self.events.notify(result.message, "warning")
            return result
        result.signature_valid = True

        delivery = await self.deliveries.find(dr_number)
        if delivery is None:
            result.warnings.append(f"DR {dr_number} was not found; proof saved with the submitted details only")
        proof = build_proof(dr_number, signature, details or ContactDetails(), delivery)
        try:
            await self.gateway.save(PROOF_OF_DELIVERY, proof_to_record(proof))
        except OSError as e:
            logger.error(f"Could not store proof of delivery for DR {dr_number}: {e}")
            result.error_code = "proof_not_saved"
            result.message = f"Proof of delivery for DR {dr_number} could not be saved"
            self.events.notify(result.message, "error")
            return result
        result.proof_saved = True
        self.events.data_changed(PROOF_OF_DELIVERY)

        pending = await self._mark_pending(dr_number)
        status = await self.deliveries.set_status(dr_number, DeliveryStatus.COMPLETED)
        if not status.ok:
            error = PartialCompletionError(
                f"Proof saved for DR {dr_number} but the delivery was not completed: {status.message}"
            )
            await self._record_failure(pending, status.message)
            logger.error(str(error))
            result.error_code = error.code
            result.message = str(error)
            self.events.notify(result.message, "error")
            return result
        result.status_changed = True
        await self.gateway.remove(PENDING_COMPLETIONS, dr_number)

        self.deliveries.invalidate()
        result.cache_invalidated = True

        self.events.data_changed(ACTIVE_DELIVERIES, DELIVERY_HISTORY, DASHBOARD_VIEW)
        result.views_notified = True

        result.message = f"Signature saved for DR {dr_number}"
        self.events.notify(result.message, "success")
        return result

    async def complete_batch(
        self,
        dr_numbers: Iterable[str],
        signature_image: bytes | str | None,
        details: ContactDetails | None = None,
    ) -> list[CompletionResult]:
        """One signature covering several deliveries. Each DR completes independently."""
        unique: list[str] = []
        for dr_number in dr_numbers:
            dr_number = (dr_number or "").strip()
            if dr_number and dr_number not in unique:
                unique.append(dr_number)

        results = [await self.complete(dr_number, signature_image, details) for dr_number in unique]
        completed = sum(1 for result in results if result.ok)
        if len(unique) > 1:
            severity = "success" if completed == len(unique) else "warning"
            self.events.notify(f"Saved signatures for {completed} of {len(unique)} deliveries", severity)
        return results

    async def reconcile_pending(self) -> list[str]:
        """Retry the status step for every recorded pending completion. Returns the DRs that completed."""
        resolved: list[str] = []
        for record in await self.gateway.fetch_all(PENDING_COMPLETIONS):
            pending = pending_from_record(record)
            status = await self.deliveries.set_status(pending.dr_number, DeliveryStatus.COMPLETED)
            if status.ok:
                await self.gateway.remove(PENDING_COMPLETIONS, pending.dr_number)
                resolved.append(pending.dr_number)
            else:
                await self._record_failure(pending, status.message)
        if resolved:
            logger.info(f"Reconciled {len(resolved)} pending completions: {resolved}")
            self.deliveries.invalidate()
            self.events.data_changed(ACTIVE_DELIVERIES, DELIVERY_HISTORY, DASHBOARD_VIEW)
        return resolved

    async def pending(self) -> list[PendingCompletion]:
        return [pending_from_record(record) for record in await self.gateway.fetch_all(PENDING_COMPLETIONS)]

    async def proofs(self) -> list[ProofOfDelivery]:
        return [proof_from_record(record) for record in await self.gateway.fetch_all(PROOF_OF_DELIVERY)]

    async def get_proof(self, dr_number: str) -> Optional[ProofOfDelivery]:
        return resolve(await self.proofs(), {"drNumber": dr_number}, dr_number_key)

    async def _mark_pending(self, dr_number: str) -> PendingCompletion:
        records = await self.gateway.fetch_all(PENDING_COMPLETIONS)
        existing = resolve(records, {"drNumber": dr_number}, dr_number_key)
        pending = pending_from_record(existing) if existing else PendingCompletion(dr_number, recorded_at=utcnow())
        saved = await self.gateway.save(PENDING_COMPLETIONS, pending_to_record(pending))
        return pending_from_record(saved)

    async def _record_failure(self, pending: PendingCompletion, message: str) -> None:
        pending.attempts += 1
        pending.last_error = message
        await self.gateway.save(PENDING_COMPLETIONS, pending_to_record(pending))
