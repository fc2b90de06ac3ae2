"""Pydantic schemas for the sale ledger API."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import PageMeta


class SaleCreate(BaseModel):
    date: dt.date
    purchase_id: Optional[int] = Field(default=None, gt=0, description="Achat d'origine du riz vendu")
    quantity: int = Field(..., gt=0)
    weight: Decimal = Field(..., ge=Decimal("0.01"))
    extra_weight: Decimal = Field(default=Decimal("0"), ge=0)
    price: Decimal = Field(..., ge=Decimal("0.01"))
    pellet: Decimal = Field(default=Decimal("0"), ge=0)
    fuel: Decimal = Field(default=Decimal("0"), ge=0)
    labor: Decimal = Field(default=Decimal("0"), ge=0)


class SaleUpdate(BaseModel):
    date: Optional[dt.date] = None
    purchase_id: Optional[int] = Field(default=None, gt=0)
    quantity: Optional[int] = Field(default=None, gt=0)
    weight: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))
    extra_weight: Optional[Decimal] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))
    pellet: Optional[Decimal] = Field(default=None, ge=0)
    fuel: Optional[Decimal] = Field(default=None, ge=0)
    labor: Optional[Decimal] = Field(default=None, ge=0)


class SaleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    purchase_id: Optional[int] = None
    quantity: int
    weight: float
    extra_weight: float
    price: float
    pellet: float
    fuel: float
    labor: float
    total_weight: float
    revenue: float
    operational_costs: float
    net_profit: Optional[float] = None
    rendement: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class SaleListResponse(BaseModel):
    items: List[SaleOut]
    pagination: PageMeta


class SaleStats(BaseModel):
    total_sales: int
    total_quantity: int
    total_weight: float
    total_revenue: float
    total_net_profit: float
    total_operational_costs: float
    average_price: float
    profit_margin: float


class SaleMonth(BaseModel):
    month: int
    label: str
    count: int
    revenue: float
    net_profit: float
    total_weight: float


class ProfitabilityPeriod(BaseModel):
    period: str
    sales_count: int
    revenue: float
    net_profit: float
    operational_costs: float
    total_weight: float
    profit_margin: float


class InventoryTurnoverRow(BaseModel):
    purchase_id: int
    date: dt.date
    supplier: Optional[str] = None
    total_weight: float
    sold_weight: float
    remaining_weight: float
    turnover_rate: float
    sales_count: int
    days_in_stock: int


__all__ = [
    "SaleCreate",
    "SaleUpdate",
    "SaleOut",
    "SaleListResponse",
    "SaleStats",
    "SaleMonth",
    "ProfitabilityPeriod",
    "InventoryTurnoverRow",
]
