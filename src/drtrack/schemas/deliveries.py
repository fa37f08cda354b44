"""Delivery API schemas."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, Field

from .customers import CustomerModel


class CostItemModel(BaseModel):
    description: str = Field(min_length=1)
    amount: float = Field(ge=0)


class DeliveryModel(BaseModel):
    id: str | None = None
    drNumber: str
    customerName: str
    customerContact: str = ""
    origin: str = ""
    destination: str = ""
    truckPlate: str = ""
    distanceKm: float = 0.0
    additionalCosts: List[CostItemModel] = []
    status: str
    createdAt: str | None = None
    updatedAt: str | None = None
    completedAt: str | None = None


class DeliveryCreateRequest(BaseModel):
    drNumber: str = Field(min_length=1)
    customerName: str = Field(min_length=1)
    customerContact: str = ""
    origin: str = ""
    destination: str = ""
    truckPlate: str = ""
    distanceKm: float = Field(default=0.0, ge=0)
    additionalCosts: List[CostItemModel] = []


class BookingResponse(BaseModel):
    delivery: DeliveryModel
    customer: CustomerModel | None = None


class StatusUpdateRequest(BaseModel):
    status: str = Field(description="Active, In Transit, On Schedule, Delayed or Completed")


class OperationResultModel(BaseModel):
    ok: bool
    message: str = ""
    errorCode: str | None = None
    data: Any = None


class RepairResponse(BaseModel):
    repaired: List[str]
