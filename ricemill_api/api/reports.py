"""Cross-ledger dashboard."""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Query

from ricemill import reporting
from ricemill_api.schemas.reports import DashboardSummary

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard", response_model=DashboardSummary)
def dashboard(as_of: dt.date | None = Query(default=None)) -> dict:
    return reporting.dashboard_summary(as_of)
