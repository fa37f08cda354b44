"""Customer endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import Customer
from ...models.results import ValidationError
from ...persistence.serialization import customer_to_record
from ...schemas.customers import AutoCreateRequest, CustomerCreateRequest, CustomerModel, MergeResponse
from ...services.container import Services
from ..deps import get_services

router = APIRouter(prefix="/customers", tags=["customers"])


def _to_model(customer: Customer) -> CustomerModel:
    return CustomerModel.model_validate(customer_to_record(customer))


@router.get("", response_model=List[CustomerModel], status_code=status.HTTP_200_OK)
async def list_customers(services: Services = Depends(get_services)) -> List[CustomerModel]:
    return [_to_model(customer) for customer in await services.customers.fetch_all()]


@router.post("", response_model=CustomerModel, status_code=status.HTTP_201_CREATED)
async def save_customer(request: CustomerCreateRequest, services: Services = Depends(get_services)) -> CustomerModel:
    customer = Customer(
        id=request.id,
        contact_person=request.contactPerson,
        phone=request.phone,
        address=request.address,
        email=request.email,
        status=request.status,
        notes=request.notes,
    )
    try:
        saved = await services.customers.save(customer)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors) from exc
    services.events.notify(f"Customer {saved.contact_person} saved", "success")
    return _to_model(saved)


@router.post("/auto-create", response_model=CustomerModel)
async def auto_create_customer(request: AutoCreateRequest, services: Services = Depends(get_services)) -> CustomerModel:
    try:
        customer = await services.customers.auto_create(request.name, request.phone, request.address)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors) from exc
    return _to_model(customer)


@router.post("/merge", response_model=MergeResponse)
async def merge_customers(services: Services = Depends(get_services)) -> MergeResponse:
    merged = await services.customers.merge_duplicates()
    if merged:
        services.events.notify(f"Merged {merged} duplicate customers", "success")
    return MergeResponse(merged=merged, customers=len(await services.customers.fetch_all()))


@router.get("/{customer_id}", response_model=CustomerModel)
async def get_customer(customer_id: str, services: Services = Depends(get_services)) -> CustomerModel:
    customer = await services.customers.get(customer_id)
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Customer {customer_id} not found")
    return _to_model(customer)
