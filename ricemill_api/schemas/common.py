"""Schémas partagés (pagination)."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel

from ricemill.repositories.base import PagedResult


class PageMeta(BaseModel):
    total: int
    page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


def page_payload(result: PagedResult, convert: Callable[[Any], BaseModel]) -> dict[str, Any]:
    return {
        "items": [convert(item) for item in result.items],
        "pagination": PageMeta(
            total=result.total,
            page=result.page,
            per_page=result.per_page,
            total_pages=result.total_pages,
            has_next=result.has_next,
            has_prev=result.has_prev,
        ),
    }


__all__ = ["PageMeta", "page_payload"]
