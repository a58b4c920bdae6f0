"""Pydantic schemas for customers and products."""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class CustomerCreate(BaseModel):
    name: str = Field(min_length=2)
    business_id: str | None = Field(default=None, description="Admins only; others create in their own business")
    email: str = ""
    phone: str = ""
    mobile: str = ""
    address: str = ""
    postcode: str = ""


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2)
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    address: str | None = None
    postcode: str | None = None


class CustomerResponse(BaseModel):
    id: str
    business_id: str | None
    name: str
    email: str | None
    phone: str | None
    mobile: str | None
    address: str | None
    postcode: str | None
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    name: str = Field(min_length=2)
    category: str = ""
    description: str = ""
    price: float = Field(default=0.0, ge=0)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2)
    category: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    is_active: bool | None = None


class ProductResponse(BaseModel):
    id: str
    business_id: str | None
    name: str
    category: str | None
    description: str | None
    price: float
    is_active: bool | None
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)
