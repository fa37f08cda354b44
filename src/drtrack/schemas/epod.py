"""Proof-of-delivery API schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ProofOfDeliveryModel(BaseModel):
    id: str | None = None
    drNumber: str
    customerName: str = ""
    customerContact: str = ""
    truckPlate: str = ""
    origin: str = ""
    destination: str = ""
    signatureImage: str
    status: str = "Completed"
    signedAt: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None


class SignatureDetails(BaseModel):
    signatureImage: str = ""
    customerName: str = ""
    customerContact: str = ""
    truckPlate: str = ""
    origin: str = ""
    destination: str = ""


class BatchCompleteRequest(SignatureDetails):
    drNumbers: List[str] = Field(min_length=1)


class CompletionResultModel(BaseModel):
    drNumber: str
    ok: bool
    signatureValid: bool
    proofSaved: bool
    statusChanged: bool
    cacheInvalidated: bool
    viewsNotified: bool
    errorCode: str | None = None
    message: str = ""
    warnings: List[str] = []


class PendingCompletionModel(BaseModel):
    drNumber: str
    recordedAt: str | None = None
    attempts: int = 0
    lastError: str | None = None


class ReconcileResponse(BaseModel):
    completed: List[str]
    stillPending: List[PendingCompletionModel]
