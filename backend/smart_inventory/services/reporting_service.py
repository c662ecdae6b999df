# Overview: Read-only statistics rollups over the sale ledger.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, case, func

from ..extensions import db
from ..models import SaleRecord, StockItem
from ..time_utils import (
    start_of_month,
    start_of_next_month,
    to_utc_z,
    trailing_window_start,
    utcnow,
)


TOP_SELLERS_LIMIT = 5
WEEKLY_WINDOW_DAYS = 7


def _windowed_sum(condition):
    return func.coalesce(func.sum(case((condition, SaleRecord.total_cents), else_=0)), 0)


def _per_item_rows(now: datetime):
    """
    One grouped SELECT, so every figure in a snapshot comes from the same
    read and a concurrently committed sale is either fully in or fully out.
    """
    month_start = start_of_month(now)
    next_month_start = start_of_next_month(now)
    week_start = trailing_window_start(now, WEEKLY_WINDOW_DAYS)

    in_month = and_(SaleRecord.sold_at >= month_start, SaleRecord.sold_at < next_month_start)
    in_week = and_(SaleRecord.sold_at > week_start, SaleRecord.sold_at <= now)

    return (
        db.session.query(
            SaleRecord.item_id.label("item_id"),
            StockItem.name.label("name"),
            func.sum(SaleRecord.quantity).label("quantity_sold"),
            func.sum(SaleRecord.total_cents).label("revenue_cents"),
            _windowed_sum(in_month).label("monthly_revenue_cents"),
            _windowed_sum(in_week).label("weekly_revenue_cents"),
        )
        .join(StockItem, StockItem.id == SaleRecord.item_id)
        .group_by(SaleRecord.item_id, StockItem.name)
        .all()
    )


def rank_top_sellers(rows: list[dict], limit: int = TOP_SELLERS_LIMIT) -> list[dict]:
    """
    Quantity desc, then revenue desc, then name asc; item id settles
    identical names so the order is stable across runs.
    """
    ranked = sorted(
        rows,
        key=lambda r: (-r["quantity_sold"], -r["revenue_cents"], r["name"], r["item_id"]),
    )
    return ranked[:limit]


def compute_statistics(now: datetime | None = None) -> dict:
    """
    Statistics snapshot as of now (UTC-naive; defaults to utcnow()).

    - total_revenue_cents: every sale
    - monthly_revenue_cents: calendar month containing now
    - weekly_revenue_cents: trailing seven days ending at now
    - top_selling_items: top five items by quantity sold

    Pure: performs no writes, identical ledger state gives identical output.
    """
    now = now or utcnow()

    per_item = [
        {
            "item_id": row.item_id,
            "name": row.name,
            "quantity_sold": int(row.quantity_sold or 0),
            "revenue_cents": int(row.revenue_cents or 0),
            "monthly_revenue_cents": int(row.monthly_revenue_cents or 0),
            "weekly_revenue_cents": int(row.weekly_revenue_cents or 0),
        }
        for row in _per_item_rows(now)
    ]

    top = [
        {
            "item_id": r["item_id"],
            "name": r["name"],
            "quantity_sold": r["quantity_sold"],
            "revenue_cents": r["revenue_cents"],
        }
        for r in rank_top_sellers(per_item)
    ]

    return {
        "generated_at": to_utc_z(now),
        "month_start": to_utc_z(start_of_month(now)),
        "week_start": to_utc_z(trailing_window_start(now, WEEKLY_WINDOW_DAYS)),
        "total_revenue_cents": sum(r["revenue_cents"] for r in per_item),
        "monthly_revenue_cents": sum(r["monthly_revenue_cents"] for r in per_item),
        "weekly_revenue_cents": sum(r["weekly_revenue_cents"] for r in per_item),
        "top_selling_items": top,
    }
