"""Pydantic schemas for the invoice ledger API."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import PageMeta


class InvoiceItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=Decimal("0.01"))


class InvoiceItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(default=None, gt=0)
    price: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))


class InvoiceCreate(BaseModel):
    invoice_number: Optional[str] = Field(default=None, max_length=50, description="Généré si absent")
    date: dt.date
    customer: str = Field(..., min_length=2, max_length=255)
    amount: Optional[Decimal] = Field(default=None, ge=0, description="Calculé depuis les lignes si absent")
    due_date: dt.date
    status: Literal["paid", "unpaid"] = "unpaid"
    items: List[InvoiceItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def _due_after_date(self) -> "InvoiceCreate":
        if self.due_date < self.date:
            raise ValueError("Due date must be on or after the invoice date")
        return self


class InvoiceUpdate(BaseModel):
    invoice_number: Optional[str] = Field(default=None, max_length=50)
    date: Optional[dt.date] = None
    customer: Optional[str] = Field(default=None, min_length=2, max_length=255)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[dt.date] = None
    status: Optional[Literal["paid", "unpaid"]] = None
    items: Optional[List[InvoiceItemCreate]] = Field(
        default=None, description="Remplace l'ensemble des lignes"
    )


class InvoiceItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    name: str
    quantity: int
    price: float
    total: float


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    date: dt.date
    customer: str
    amount: float
    due_date: dt.date
    status: str
    items: List[InvoiceItemOut] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class OverdueInvoiceOut(InvoiceOut):
    days_overdue: int


class InvoiceListResponse(BaseModel):
    items: List[InvoiceOut]
    pagination: PageMeta


class InvoiceNumberResponse(BaseModel):
    invoice_number: str


class StatusTotals(BaseModel):
    count: int
    amount: float


class CustomerTotals(BaseModel):
    customer: str
    invoice_count: int
    total_amount: float


class InvoiceSummary(BaseModel):
    total_invoices: int
    total_amount: float
    average_amount: float
    overdue_count: int
    overdue_amount: float


class InvoiceStats(BaseModel):
    summary: InvoiceSummary
    by_status: Dict[str, StatusTotals]
    top_customers: List[CustomerTotals]


class InvoiceMonth(BaseModel):
    month: int
    label: str
    count: int
    amount: float
    paid_count: int
    paid_amount: float
    collection_rate: float


class AgingInvoice(BaseModel):
    id: int
    invoice_number: str
    customer: str
    amount: float
    due_date: dt.date
    days_overdue: int


class AgingBucket(BaseModel):
    count: int
    amount: float
    percentage: float
    invoices: List[AgingInvoice]


class AgingReport(BaseModel):
    as_of: dt.date
    total_unpaid_amount: float
    total_unpaid_invoices: int
    buckets: Dict[str, AgingBucket]


__all__ = [
    "InvoiceItemCreate",
    "InvoiceItemUpdate",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceItemOut",
    "InvoiceOut",
    "OverdueInvoiceOut",
    "InvoiceListResponse",
    "InvoiceNumberResponse",
    "InvoiceStats",
    "InvoiceMonth",
    "AgingReport",
]
