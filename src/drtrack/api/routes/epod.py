"""Proof-of-delivery endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import ContactDetails, ProofOfDelivery
from ...models.results import CompletionResult, EmptySignatureError, ValidationError
from ...persistence.serialization import pending_to_record, proof_to_record
from ...schemas.epod import (
    BatchCompleteRequest,
    CompletionResultModel,
    PendingCompletionModel,
    ProofOfDeliveryModel,
    ReconcileResponse,
    SignatureDetails,
)
from ...services.container import Services
from ..deps import get_services

router = APIRouter(prefix="/epod", tags=["epod"])


def _details(request: SignatureDetails) -> ContactDetails:
    return ContactDetails(
        customer_name=request.customerName,
        customer_contact=request.customerContact,
        truck_plate=request.truckPlate,
        origin=request.origin,
        destination=request.destination,
    )


def _result_model(result: CompletionResult) -> CompletionResultModel:
    return CompletionResultModel(
        drNumber=result.dr_number,
        ok=result.ok,
        signatureValid=result.signature_valid,
        proofSaved=result.proof_saved,
        statusChanged=result.status_changed,
        cacheInvalidated=result.cache_invalidated,
        viewsNotified=result.views_notified,
        errorCode=result.error_code,
        message=result.message,
        warnings=result.warnings,
    )


def _proof_model(proof: ProofOfDelivery) -> ProofOfDeliveryModel:
    return ProofOfDeliveryModel.model_validate(proof_to_record(proof))


@router.get("", response_model=List[ProofOfDeliveryModel])
async def list_proofs(services: Services = Depends(get_services)) -> List[ProofOfDeliveryModel]:
    return [_proof_model(proof) for proof in await services.completion.proofs()]


@router.get("/pending", response_model=List[PendingCompletionModel])
async def list_pending(services: Services = Depends(get_services)) -> List[PendingCompletionModel]:
    return [
        PendingCompletionModel.model_validate(pending_to_record(pending))
        for pending in await services.completion.pending()
    ]


@router.get("/{dr_number}", response_model=ProofOfDeliveryModel)
async def get_proof(dr_number: str, services: Services = Depends(get_services)) -> ProofOfDeliveryModel:
    proof = await services.completion.get_proof(dr_number)
    if proof is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No proof of delivery for DR {dr_number}")
    return _proof_model(proof)


@router.post("/{dr_number}/complete", response_model=CompletionResultModel)
async def complete_delivery(
    dr_number: str,
    request: SignatureDetails,
    services: Services = Depends(get_services),
) -> CompletionResultModel:
    result = await services.completion.complete(dr_number, request.signatureImage, _details(request))
    model = _result_model(result)
    if result.error_code in (EmptySignatureError.code, ValidationError.code):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=model.model_dump())
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=model.model_dump())
    return model


@router.post("/batch", response_model=List[CompletionResultModel])
async def complete_batch(
    request: BatchCompleteRequest,
    services: Services = Depends(get_services),
) -> List[CompletionResultModel]:
    results = await services.completion.complete_batch(request.drNumbers, request.signatureImage, _details(request))
    return [_result_model(result) for result in results]


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(services: Services = Depends(get_services)) -> ReconcileResponse:
    completed = await services.completion.reconcile_pending()
    still_pending = [
        PendingCompletionModel.model_validate(pending_to_record(pending))
        for pending in await services.completion.pending()
    ]
    return ReconcileResponse(completed=completed, stillPending=still_pending)
