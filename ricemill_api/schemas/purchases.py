"""Pydantic schemas for the purchase ledger API."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import PageMeta


class PurchaseCreate(BaseModel):
    date: dt.date
    supplier_id: Optional[int] = Field(default=None, gt=0)
    supplier: Optional[str] = Field(default=None, max_length=255, description="Nom libre du fournisseur")
    quantity: int = Field(..., gt=0, description="Nombre d'unités (sacs)")
    weight: Decimal = Field(..., ge=Decimal("0.01"), description="Poids unitaire (kg)")
    extra_weight: Decimal = Field(default=Decimal("0"), ge=0, description="Poids additionnel par unité")
    price: Decimal = Field(..., ge=Decimal("0.01"), description="Prix par kg")
    truck_cost: Decimal = Field(default=Decimal("0"), ge=0)
    labor_cost: Decimal = Field(default=Decimal("0"), ge=0)
    pellet_cost: Decimal = Field(default=Decimal("0"), ge=0)


class PurchaseUpdate(BaseModel):
    date: Optional[dt.date] = None
    supplier_id: Optional[int] = Field(default=None, gt=0)
    supplier: Optional[str] = Field(default=None, max_length=255)
    quantity: Optional[int] = Field(default=None, gt=0)
    weight: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))
    extra_weight: Optional[Decimal] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))
    truck_cost: Optional[Decimal] = Field(default=None, ge=0)
    labor_cost: Optional[Decimal] = Field(default=None, ge=0)
    pellet_cost: Optional[Decimal] = Field(default=None, ge=0)


class PurchaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    supplier_id: Optional[int] = None
    supplier: Optional[str] = None
    quantity: int
    weight: float
    extra_weight: float
    price: float
    truck_cost: float
    labor_cost: float
    pellet_cost: float
    total_cost: float
    total_weight: float
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class PurchaseListResponse(BaseModel):
    items: List[PurchaseOut]
    pagination: PageMeta


class InventoryPositionOut(BaseModel):
    purchase: PurchaseOut
    sold_weight: float
    remaining_weight: float
    sales_count: int


class SupplierTotals(BaseModel):
    supplier: str
    purchase_count: int
    total_cost: float
    total_weight: float


class PurchaseSummary(BaseModel):
    total_purchases: int
    total_quantity: int
    total_weight: float
    total_cost: float
    average_price: float
    average_cost: float


class PurchaseStats(BaseModel):
    summary: PurchaseSummary
    top_suppliers: List[SupplierTotals]


class PurchaseMonth(BaseModel):
    month: int
    label: str
    count: int
    total_cost: float
    total_weight: float


__all__ = [
    "PurchaseCreate",
    "PurchaseUpdate",
    "PurchaseOut",
    "PurchaseListResponse",
    "InventoryPositionOut",
    "PurchaseStats",
    "PurchaseMonth",
]
