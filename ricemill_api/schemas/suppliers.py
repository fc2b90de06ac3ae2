"""Pydantic schemas for the supplier registry API."""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import PageMeta


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    status: Literal["active", "inactive"] = "active"

    @field_validator("name", mode="before")
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value and "@" not in value:
            raise ValueError("Please provide a valid email address")
        return value


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None


class SupplierOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    status: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class SupplierListResponse(BaseModel):
    items: List[SupplierOut]
    pagination: PageMeta


class SupplierStats(BaseModel):
    total: int
    active: int
    inactive: int
    active_percentage: float


__all__ = [
    "SupplierCreate",
    "SupplierUpdate",
    "SupplierOut",
    "SupplierListResponse",
    "SupplierStats",
]
