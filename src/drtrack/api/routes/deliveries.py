"""Delivery endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.domain import CostItem, Delivery, DeliveryStatus
from ...models.results import NotFoundError, ValidationError
from ...persistence.serialization import customer_to_record, delivery_to_record
from ...schemas.customers import CustomerModel
from ...schemas.deliveries import (
    BookingResponse,
    DeliveryCreateRequest,
    DeliveryModel,
    OperationResultModel,
    RepairResponse,
    StatusUpdateRequest,
)
from ...services.container import Services
from ...services.deliveries import book_delivery
from ..deps import get_services

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


def _to_model(delivery: Delivery) -> DeliveryModel:
    return DeliveryModel.model_validate(delivery_to_record(delivery))


@router.get("", response_model=List[DeliveryModel], status_code=status.HTTP_200_OK)
async def list_deliveries(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    services: Services = Depends(get_services),
) -> List[DeliveryModel]:
    try:
        deliveries = await services.deliveries.fetch_all(status_filter)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return [_to_model(delivery) for delivery in deliveries]


@router.get("/active", response_model=List[DeliveryModel])
async def list_active_deliveries(services: Services = Depends(get_services)) -> List[DeliveryModel]:
    return [_to_model(delivery) for delivery in await services.deliveries.active()]


@router.get("/history", response_model=List[DeliveryModel])
async def list_delivery_history(services: Services = Depends(get_services)) -> List[DeliveryModel]:
    return [_to_model(delivery) for delivery in await services.deliveries.history()]


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book(request: DeliveryCreateRequest, services: Services = Depends(get_services)) -> BookingResponse:
    delivery = Delivery(
        dr_number=request.drNumber,
        customer_name=request.customerName,
        customer_contact=request.customerContact,
        origin=request.origin,
        destination=request.destination,
        truck_plate=request.truckPlate,
        distance_km=request.distanceKm,
        additional_costs=[CostItem(item.description, item.amount) for item in request.additionalCosts],
    )
    try:
        booked, customer = await book_delivery(services.deliveries, services.customers, delivery)
    except ValidationError as exc:
        services.events.notify(str(exc), "error")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors) from exc

    services.events.notify(f"DR {booked.dr_number} booked", "success")
    return BookingResponse(
        delivery=_to_model(booked),
        customer=CustomerModel.model_validate(customer_to_record(customer)) if customer else None,
    )


@router.patch("/{dr_number}/status", response_model=OperationResultModel)
async def update_status(
    dr_number: str,
    request: StatusUpdateRequest,
    services: Services = Depends(get_services),
) -> OperationResultModel:
    result = await services.deliveries.set_status(dr_number, request.status)
    if not result.ok:
        services.events.notify(result.message, "warning")
        code = status.HTTP_404_NOT_FOUND if result.error_code == NotFoundError.code else status.HTTP_422_UNPROCESSABLE_ENTITY
        raise HTTPException(status_code=code, detail=result.message)
    return OperationResultModel(
        ok=True,
        message=result.message,
        data=_to_model(result.data).model_dump() if isinstance(result.data, Delivery) else None,
    )


@router.delete("/{dr_number}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_booking(dr_number: str, services: Services = Depends(get_services)) -> None:
    if not await services.deliveries.remove_active(dr_number):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"DR {dr_number} is not an active delivery")


@router.post("/repair", response_model=RepairResponse)
async def repair(services: Services = Depends(get_services)) -> RepairResponse:
    return RepairResponse(repaired=await services.deliveries.repair_collections())


@router.get("/statuses", response_model=List[str])
def list_statuses() -> List[str]:
    return [member.value for member in DeliveryStatus]
