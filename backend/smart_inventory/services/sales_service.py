"""
Sale Ledger - price-snapshotted, append-only sale records.

record_sale is the only write path. Within one transaction it:
1. reads the active item (ItemNotFoundError if absent),
2. decrements quantity with a conditional UPDATE that only matches while
   quantity >= requested (InsufficientStockError otherwise),
3. snapshots the unit price read in step 1,
4. inserts the SaleRecord,
and commits once. Any failure rolls the whole unit back, so there is never
a decrement without a record or a record without a decrement.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import SaleRecord, StockItem
from ..time_utils import utcnow
from ..validation import (
    CustomerInfo,
    MAX_INT,
    InvalidQuantityError,
    NotFoundError,
    parse_customer,
    require_positive_quantity,
)
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry

__all__ = [
    "SaleError",
    "ItemNotFoundError",
    "InsufficientStockError",
    "InvalidQuantityError",
    "record_sale",
    "list_sales",
    "get_sale",
]


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ItemNotFoundError(SaleError):
    """Referenced stock item does not exist or has been deleted."""


class InsufficientStockError(SaleError):
    """Not enough quantity on hand; nothing was written."""


def _conditional_decrement(item_id: int, quantity: int) -> bool:
    """
    Atomically subtract quantity if enough is on hand.

    Single UPDATE ... WHERE quantity >= :q, so two sales can never both pass
    the check on a stale read. Returns False when no row matched.
    """
    result = db.session.execute(
        update(StockItem)
        .where(
            StockItem.id == item_id,
            StockItem.is_active.is_(True),
            StockItem.quantity >= quantity,
        )
        .values(quantity=StockItem.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def record_sale(
    item_id: int,
    quantity: int,
    customer: CustomerInfo | dict | None = None,
    user_id: int | None = None,
) -> SaleRecord:
    """
    Record a sale of quantity units of item_id.

    Raises InvalidQuantityError, ValidationError (customer), ItemNotFoundError,
    InsufficientStockError. Storage errors propagate after rollback.
    """
    require_positive_quantity(quantity)
    if isinstance(customer, dict):
        customer = parse_customer(customer)

    def _op():
        try:
            begin_write_transaction()
            item = lock_for_update(
                db.session.query(StockItem).filter(
                    StockItem.id == item_id,
                    StockItem.is_active.is_(True),
                )
            ).first()
            if item is None:
                raise ItemNotFoundError("Item not found", details={"item_id": item_id})

            # Snapshot before the decrement; later price edits never touch this sale
            unit_price_cents = item.price_cents
            if quantity * unit_price_cents > MAX_INT:
                raise InvalidQuantityError("quantity is out of range")

            if not _conditional_decrement(item_id, quantity):
                raise InsufficientStockError(
                    "Insufficient stock",
                    details={
                        "item_id": item_id,
                        "requested_quantity": quantity,
                        "on_hand": item.quantity,
                    },
                )

            sale = SaleRecord(
                item_id=item_id,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                sold_at=utcnow(),
                customer_name=customer.name if customer else None,
                customer_email=customer.email if customer else None,
                customer_phone=customer.phone if customer else None,
                created_by_user_id=user_id,
            )
            db.session.add(sale)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return sale

    sale = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s recorded: item=%s quantity=%s total_cents=%s",
        sale.id, sale.item_id, sale.quantity, sale.total_cents,
    )
    return sale


def list_sales(page: int | None = None, per_page: int | None = None) -> dict:
    """
    Sales newest first, each joined with its item for display.

    If page is None all sales are returned; otherwise per_page defaults
    to 20 (max 100).
    """
    base_query = (
        db.session.query(SaleRecord)
        .options(joinedload(SaleRecord.item))
        .order_by(SaleRecord.sold_at.desc(), SaleRecord.id.desc())
    )

    if page is None:
        sales = base_query.all()
        return {
            "sales": [s.to_dict() for s in sales],
            "count": len(sales),
        }

    per_page = max(1, min(per_page or 20, 100))
    page = max(page, 1)

    total = db.session.query(SaleRecord).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    if page > total_pages:
        sales = []
    else:
        sales = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "sales": [s.to_dict() for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_sale(sale_id: int) -> SaleRecord:
    sale = (
        db.session.query(SaleRecord)
        .options(joinedload(SaleRecord.item))
        .filter(SaleRecord.id == sale_id)
        .first()
    )
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale
