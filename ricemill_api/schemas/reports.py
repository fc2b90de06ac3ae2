"""Schemas for the dashboard endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class PurchaseTotals(BaseModel):
    count: int
    total_cost: float
    total_weight: float


class SaleTotals(BaseModel):
    count: int
    revenue: float
    net_profit: float


class InvoiceTotals(BaseModel):
    count: int
    unpaid_amount: float
    overdue_count: int


class DashboardSummary(BaseModel):
    purchases: PurchaseTotals
    sales: SaleTotals
    invoices: InvoiceTotals
    inventory_remaining_weight: float


__all__ = ["DashboardSummary"]
