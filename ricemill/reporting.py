"""Couche de reporting (lecture seule) : statistiques, tendances, vieillissement.

Les lignes sont chargées via ``query_df`` puis agrégées avec pandas ; aucune
fonction n'écrit en base. Les fonctions datées acceptent ``as_of`` pour
rendre les calculs reproductibles.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

import pandas as pd
import sqlalchemy as sa

from .data_repository import get_engine, query_df
from .errors import ValidationFailed
from .repositories.base import SqlUnitOfWork
from .schema import invoices, purchases, sales

logger = logging.getLogger(__name__)

TOP_N = 10
AGING_BUCKETS: tuple[tuple[str, int | None], ...] = (
    ("current", -1),
    ("1-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("90+", None),
)
PROFITABILITY_GROUPS = ("day", "week", "month")


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if pd.isna(number) else number


def _numeric(df: pd.DataFrame, *columns: str) -> pd.DataFrame:
    for column in columns:
        df[column] = df[column].map(_to_float).astype(float)
    return df


def _date_window(statement, column, start_date: date | None, end_date: date | None):
    if start_date is not None:
        statement = statement.where(column >= start_date)
    if end_date is not None:
        statement = statement.where(column <= end_date)
    return statement


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def _month_frame(year: int) -> pd.DataFrame:
    return pd.DataFrame(
        {"month": range(1, 13), "label": [f"{year}-{month:02d}" for month in range(1, 13)]}
    )


def _fill_months(df: pd.DataFrame, year: int, date_column: str, **aggregations) -> list[dict[str, Any]]:
    """Agrège par mois et complète les 12 mois avec des zéros."""

    months = _month_frame(year)
    if df.empty:
        for name in aggregations:
            months[name] = 0
        return months.to_dict("records")

    df = df.copy()
    df["month"] = pd.to_datetime(df[date_column]).dt.month
    grouped = df.groupby("month").agg(**aggregations).reset_index()
    merged = months.merge(grouped, on="month", how="left").fillna(0)
    return merged.to_dict("records")


def _load_purchases(start_date: date | None = None, end_date: date | None = None) -> pd.DataFrame:
    statement = sa.select(
        purchases.c.id,
        purchases.c.date,
        purchases.c.supplier,
        purchases.c.quantity,
        purchases.c.weight,
        purchases.c.extra_weight,
        purchases.c.price,
        purchases.c.total_cost,
    )
    df = query_df(_date_window(statement, purchases.c.date, start_date, end_date))
    df = _numeric(df, "quantity", "weight", "extra_weight", "price", "total_cost")
    df["total_weight"] = df["quantity"] * (df["weight"] + df["extra_weight"])
    return df


def _load_sales(start_date: date | None = None, end_date: date | None = None) -> pd.DataFrame:
    statement = sa.select(
        sales.c.id,
        sales.c.date,
        sales.c.purchase_id,
        sales.c.quantity,
        sales.c.weight,
        sales.c.extra_weight,
        sales.c.price,
        sales.c.pellet,
        sales.c.fuel,
        sales.c.labor,
        sales.c.net_profit,
    )
    df = query_df(_date_window(statement, sales.c.date, start_date, end_date))
    df = _numeric(
        df, "quantity", "weight", "extra_weight", "price", "pellet", "fuel", "labor", "net_profit"
    )
    df["total_weight"] = df["quantity"] * (df["weight"] + df["extra_weight"])
    df["revenue"] = df["total_weight"] * df["price"]
    df["operational_costs"] = df["pellet"] + df["fuel"] + df["labor"]
    return df


def _load_invoices(start_date: date | None = None, end_date: date | None = None) -> pd.DataFrame:
    statement = sa.select(
        invoices.c.id,
        invoices.c.invoice_number,
        invoices.c.date,
        invoices.c.customer,
        invoices.c.amount,
        invoices.c.due_date,
        invoices.c.status,
    )
    df = query_df(_date_window(statement, invoices.c.date, start_date, end_date))
    return _numeric(df, "amount")


# --- Achats ---


def purchase_stats(start_date: date | None = None, end_date: date | None = None) -> dict[str, Any]:
    df = _load_purchases(start_date, end_date)
    count = int(len(df))
    summary = {
        "total_purchases": count,
        "total_quantity": int(df["quantity"].sum()) if count else 0,
        "total_weight": round(float(df["total_weight"].sum()), 2) if count else 0.0,
        "total_cost": round(float(df["total_cost"].sum()), 2) if count else 0.0,
        "average_price": round(float(df["price"].mean()), 2) if count else 0.0,
        "average_cost": round(float(df["total_cost"].mean()), 2) if count else 0.0,
    }

    top_suppliers: list[dict[str, Any]] = []
    if count:
        named = df.assign(supplier=df["supplier"].fillna("").astype(str).str.strip())
        named = named[named["supplier"] != ""]
        if not named.empty:
            grouped = (
                named.groupby("supplier")
                .agg(
                    purchase_count=("id", "count"),
                    total_cost=("total_cost", "sum"),
                    total_weight=("total_weight", "sum"),
                )
                .reset_index()
                .sort_values(["total_cost", "supplier"], ascending=[False, True])
                .head(TOP_N)
            )
            top_suppliers = [
                {
                    "supplier": row["supplier"],
                    "purchase_count": int(row["purchase_count"]),
                    "total_cost": round(float(row["total_cost"]), 2),
                    "total_weight": round(float(row["total_weight"]), 2),
                }
                for row in grouped.to_dict("records")
            ]

    return {"summary": summary, "top_suppliers": top_suppliers}


def purchase_monthly_trends(year: int | None = None) -> list[dict[str, Any]]:
    year = year or date.today().year
    df = _load_purchases(*_year_bounds(year))
    rows = _fill_months(
        df,
        year,
        "date",
        count=("id", "count"),
        total_cost=("total_cost", "sum"),
        total_weight=("total_weight", "sum"),
    )
    return [
        {
            "month": int(row["month"]),
            "label": row["label"],
            "count": int(row["count"]),
            "total_cost": round(float(row["total_cost"]), 2),
            "total_weight": round(float(row["total_weight"]), 2),
        }
        for row in rows
    ]


# --- Ventes ---


def sale_stats(start_date: date | None = None, end_date: date | None = None) -> dict[str, Any]:
    df = _load_sales(start_date, end_date)
    count = int(len(df))
    revenue = float(df["revenue"].sum()) if count else 0.0
    net_profit = float(df["net_profit"].sum()) if count else 0.0
    return {
        "total_sales": count,
        "total_quantity": int(df["quantity"].sum()) if count else 0,
        "total_weight": round(float(df["total_weight"].sum()), 2) if count else 0.0,
        "total_revenue": round(revenue, 2),
        "total_net_profit": round(net_profit, 2),
        "total_operational_costs": round(float(df["operational_costs"].sum()), 2) if count else 0.0,
        "average_price": round(float(df["price"].mean()), 2) if count else 0.0,
        "profit_margin": round(net_profit / revenue * 100, 2) if revenue else 0.0,
    }


def sale_monthly_trends(year: int | None = None) -> list[dict[str, Any]]:
    year = year or date.today().year
    df = _load_sales(*_year_bounds(year))
    rows = _fill_months(
        df,
        year,
        "date",
        count=("id", "count"),
        revenue=("revenue", "sum"),
        net_profit=("net_profit", "sum"),
        total_weight=("total_weight", "sum"),
    )
    return [
        {
            "month": int(row["month"]),
            "label": row["label"],
            "count": int(row["count"]),
            "revenue": round(float(row["revenue"]), 2),
            "net_profit": round(float(row["net_profit"]), 2),
            "total_weight": round(float(row["total_weight"]), 2),
        }
        for row in rows
    ]


def _period_labels(dates: pd.Series, group_by: str) -> pd.Series:
    dates = pd.to_datetime(dates)
    if group_by == "day":
        return dates.dt.strftime("%Y-%m-%d")
    if group_by == "week":
        iso = dates.dt.isocalendar()
        return iso["year"].astype(str) + "-W" + iso["week"].astype(int).map("{:02d}".format)
    return dates.dt.strftime("%Y-%m")


def profitability_analysis(
    group_by: str = "month",
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict[str, Any]]:
    if group_by not in PROFITABILITY_GROUPS:
        raise ValidationFailed(
            f"group_by must be one of {', '.join(PROFITABILITY_GROUPS)}", field="group_by"
        )
    df = _load_sales(start_date, end_date)
    if df.empty:
        return []

    df["period"] = _period_labels(df["date"], group_by)
    grouped = (
        df.groupby("period")
        .agg(
            sales_count=("id", "count"),
            revenue=("revenue", "sum"),
            net_profit=("net_profit", "sum"),
            operational_costs=("operational_costs", "sum"),
            total_weight=("total_weight", "sum"),
        )
        .reset_index()
        .sort_values("period")
    )
    results = []
    for row in grouped.to_dict("records"):
        revenue = float(row["revenue"])
        net_profit = float(row["net_profit"])
        results.append(
            {
                "period": row["period"],
                "sales_count": int(row["sales_count"]),
                "revenue": round(revenue, 2),
                "net_profit": round(net_profit, 2),
                "operational_costs": round(float(row["operational_costs"]), 2),
                "total_weight": round(float(row["total_weight"]), 2),
                "profit_margin": round(net_profit / revenue * 100, 2) if revenue else 0.0,
            }
        )
    return results


def inventory_turnover(as_of: date | None = None) -> list[dict[str, Any]]:
    """Poids restant par achat, le plus ancien d'abord (présentation FIFO)."""

    as_of = as_of or date.today()
    with SqlUnitOfWork(get_engine()) as uow:
        positions = uow.purchases.inventory_positions()

    report = []
    for position in positions:
        purchase = position.purchase
        total = purchase.total_weight
        report.append(
            {
                "purchase_id": purchase.id,
                "date": purchase.date,
                "supplier": purchase.supplier,
                "total_weight": float(total),
                "sold_weight": float(position.sold_weight),
                "remaining_weight": float(position.remaining_weight),
                "turnover_rate": round(float(position.sold_weight / total * 100), 2) if total else 0.0,
                "sales_count": position.sales_count,
                "days_in_stock": (as_of - purchase.date).days,
            }
        )
    return report


# --- Factures ---


def invoice_stats(
    start_date: date | None = None,
    end_date: date | None = None,
    as_of: date | None = None,
) -> dict[str, Any]:
    as_of = as_of or date.today()
    df = _load_invoices(start_date, end_date)
    count = int(len(df))

    by_status = {status: {"count": 0, "amount": 0.0} for status in ("paid", "unpaid")}
    overdue_count = 0
    overdue_amount = 0.0
    top_customers: list[dict[str, Any]] = []

    if count:
        for status, group in df.groupby("status"):
            by_status[str(status)] = {
                "count": int(len(group)),
                "amount": round(float(group["amount"].sum()), 2),
            }
        due = pd.to_datetime(df["due_date"]).dt.date
        overdue = df[(df["status"] == "unpaid") & (due < as_of)]
        overdue_count = int(len(overdue))
        overdue_amount = round(float(overdue["amount"].sum()), 2)

        grouped = (
            df.groupby("customer")
            .agg(invoice_count=("id", "count"), total_amount=("amount", "sum"))
            .reset_index()
            .sort_values(["total_amount", "customer"], ascending=[False, True])
            .head(TOP_N)
        )
        top_customers = [
            {
                "customer": row["customer"],
                "invoice_count": int(row["invoice_count"]),
                "total_amount": round(float(row["total_amount"]), 2),
            }
            for row in grouped.to_dict("records")
        ]

    total_amount = round(float(df["amount"].sum()), 2) if count else 0.0
    return {
        "summary": {
            "total_invoices": count,
            "total_amount": total_amount,
            "average_amount": round(total_amount / count, 2) if count else 0.0,
            "overdue_count": overdue_count,
            "overdue_amount": overdue_amount,
        },
        "by_status": by_status,
        "top_customers": top_customers,
    }


def invoice_monthly_trends(year: int | None = None) -> list[dict[str, Any]]:
    year = year or date.today().year
    df = _load_invoices(*_year_bounds(year))
    if not df.empty:
        paid = df["status"] == "paid"
        df["paid_flag"] = paid.astype(int)
        df["paid_amount"] = df["amount"].where(paid, 0.0)
    rows = _fill_months(
        df,
        year,
        "date",
        count=("id", "count"),
        amount=("amount", "sum"),
        paid_count=("paid_flag", "sum"),
        paid_amount=("paid_amount", "sum"),
    )
    trends = []
    for row in rows:
        amount = float(row["amount"])
        paid_amount = float(row["paid_amount"])
        trends.append(
            {
                "month": int(row["month"]),
                "label": row["label"],
                "count": int(row["count"]),
                "amount": round(amount, 2),
                "paid_count": int(row["paid_count"]),
                "paid_amount": round(paid_amount, 2),
                "collection_rate": round(paid_amount / amount * 100, 2) if amount else 0.0,
            }
        )
    return trends


def aging_bucket(days_overdue: int) -> str:
    """``current`` tant que l'échéance n'est pas atteinte, puis par tranches de 30 jours."""
    for name, upper in AGING_BUCKETS:
        if upper is None or days_overdue <= upper:
            return name
    return AGING_BUCKETS[-1][0]


def aging_report(as_of: date | None = None) -> dict[str, Any]:
    as_of = as_of or date.today()
    df = _load_invoices()
    unpaid = df[df["status"] != "paid"] if not df.empty else df

    buckets: dict[str, dict[str, Any]] = {
        name: {"count": 0, "amount": 0.0, "percentage": 0.0, "invoices": []}
        for name, _ in AGING_BUCKETS
    }
    total_amount = 0.0
    for row in unpaid.sort_values("due_date").to_dict("records") if not unpaid.empty else []:
        due_date = pd.Timestamp(row["due_date"]).date()
        days = (as_of - due_date).days
        amount = float(row["amount"])
        bucket = buckets[aging_bucket(days)]
        bucket["count"] += 1
        bucket["amount"] += amount
        bucket["invoices"].append(
            {
                "id": int(row["id"]),
                "invoice_number": row["invoice_number"],
                "customer": row["customer"],
                "amount": round(amount, 2),
                "due_date": due_date,
                "days_overdue": days,
            }
        )
        total_amount += amount

    for bucket in buckets.values():
        bucket["amount"] = round(bucket["amount"], 2)
        bucket["percentage"] = round(bucket["amount"] / total_amount * 100, 2) if total_amount else 0.0

    return {
        "as_of": as_of,
        "total_unpaid_amount": round(total_amount, 2),
        "total_unpaid_invoices": int(len(unpaid)),
        "buckets": buckets,
    }


def dashboard_summary(as_of: date | None = None) -> dict[str, Any]:
    """Vue synthétique pour la page d'accueil."""

    as_of = as_of or date.today()
    purchases_summary = purchase_stats()["summary"]
    sales_summary = sale_stats()
    invoices_summary = invoice_stats(as_of=as_of)
    remaining = sum(row["remaining_weight"] for row in inventory_turnover(as_of))
    return {
        "purchases": {
            "count": purchases_summary["total_purchases"],
            "total_cost": purchases_summary["total_cost"],
            "total_weight": purchases_summary["total_weight"],
        },
        "sales": {
            "count": sales_summary["total_sales"],
            "revenue": sales_summary["total_revenue"],
            "net_profit": sales_summary["total_net_profit"],
        },
        "invoices": {
            "count": invoices_summary["summary"]["total_invoices"],
            "unpaid_amount": invoices_summary["by_status"]["unpaid"]["amount"],
            "overdue_count": invoices_summary["summary"]["overdue_count"],
        },
        "inventory_remaining_weight": round(remaining, 2),
    }
