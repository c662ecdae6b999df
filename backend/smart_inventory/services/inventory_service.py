# backend/smart_inventory/services/inventory_service.py
"""
Inventory Store: keyed CRUD over stock items.

Patches arrive already coerced by validation.validate_payload; the
business rules in enforce_rules_stock_item are re-checked here. Writes
take the same write lock as the sale ledger so an administrative
quantity edit and a concurrent sale are serialized per item.
"""
from __future__ import annotations

from ..extensions import db
from ..models import StockItem, SaleRecord
from ..validation import NotFoundError, ValidationError, enforce_rules_stock_item
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry

STOCK_ITEM_MUTABLE_FIELDS = {
    "name",
    "category",
    "description",
    "image_url",
    "price_cents",
    "quantity",
    "reorder_threshold",
}

# Non-nullable columns a patch may never clear
STOCK_ITEM_REQUIRED_FIELDS = ("name", "category", "price_cents", "quantity", "reorder_threshold")


def apply_stock_item_patch(item: StockItem, patch: dict) -> None:
    for k, v in patch.items():
        if k not in STOCK_ITEM_MUTABLE_FIELDS:
            continue
        setattr(item, k, v)


def _active_items():
    return db.session.query(StockItem).filter(StockItem.is_active.is_(True))


def list_items(low_stock_only: bool = False) -> list[StockItem]:
    query = _active_items()
    if low_stock_only:
        query = query.filter(StockItem.quantity <= StockItem.reorder_threshold)
    return query.order_by(StockItem.name.asc(), StockItem.id.asc()).all()


def get_item(item_id: int) -> StockItem:
    item = _active_items().filter(StockItem.id == item_id).first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def create_item(*, patch: dict) -> StockItem:
    """
    Create a stock item from a validated patch dict.

    Required numeric fields are never defaulted; validate_payload has
    already rejected missing ones.
    """
    for field in STOCK_ITEM_REQUIRED_FIELDS:
        if patch.get(field) is None:
            raise ValidationError(f"{field} is required")
    enforce_rules_stock_item(patch)

    item = StockItem(is_active=True)
    apply_stock_item_patch(item, patch)
    db.session.add(item)
    db.session.commit()
    return item


def update_item(*, item_id: int, patch: dict) -> StockItem:
    """Apply a partial patch. Raises NotFoundError / ValidationError."""
    for field in STOCK_ITEM_REQUIRED_FIELDS:
        if field in patch and patch[field] is None:
            raise ValidationError(f"{field} cannot be null")
    enforce_rules_stock_item(patch)

    def _op():
        begin_write_transaction()
        item = lock_for_update(_active_items().filter(StockItem.id == item_id)).first()
        if item is None:
            db.session.rollback()
            raise NotFoundError("Item not found")

        apply_stock_item_patch(item, patch)
        db.session.commit()
        return item

    return run_with_retry(_op)


def has_sale_history(item_id: int) -> bool:
    return db.session.query(SaleRecord.id).filter(SaleRecord.item_id == item_id).first() is not None


def delete_item(*, item_id: int) -> bool:
    """
    Delete a stock item.

    Items with sale history are soft-deleted (is_active=False) so sale
    records keep a valid reference; otherwise the row is removed.

    Returns True for a hard delete, False for a soft delete.
    Raises NotFoundError.
    """
    def _op():
        begin_write_transaction()
        item = lock_for_update(_active_items().filter(StockItem.id == item_id)).first()
        if item is None:
            db.session.rollback()
            raise NotFoundError("Item not found")

        if has_sale_history(item_id):
            item.is_active = False
            hard = False
        else:
            db.session.delete(item)
            hard = True

        db.session.commit()
        return hard

    return run_with_retry(_op)
