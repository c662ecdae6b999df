from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StockItem(db.Model):
    """
    One sellable product with its on-hand quantity.

    quantity is only changed by an administrative update or by the sale
    ledger's conditional decrement (see services/sales_service.py). The
    CHECK constraints are the last line of defence against oversell.

    Items referenced by sales are soft-deleted (is_active=False) so the sale
    history keeps a valid foreign key.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_stock_items_price_non_negative"),
        db.CheckConstraint("reorder_threshold >= 0", name="ck_stock_items_threshold_non_negative"),
        db.Index("ix_stock_items_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    # Quantity on hand
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_threshold = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def low_stock(self) -> bool:
        return self.quantity <= self.reorder_threshold

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "image_url": self.image_url,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "reorder_threshold": self.reorder_threshold,
            "low_stock": self.low_stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
