"""Customer-facing API schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CustomerModel(BaseModel):
    id: str | None = None
    contactPerson: str
    phone: str
    address: str = ""
    email: str = ""
    status: str = "active"
    notes: str = ""
    bookingsCount: int = 0
    lastDeliveryDate: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None


class CustomerCreateRequest(BaseModel):
    id: str | None = None
    contactPerson: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = ""
    email: str = ""
    status: str = "active"
    notes: str = ""


class AutoCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = ""


class MergeResponse(BaseModel):
    merged: int
    customers: int
