from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z


class SaleRecord(db.Model):
    """
    Immutable, price-snapshotted record of one completed sale.

    unit_price_cents is copied from the item when the sale is recorded and
    is never re-read afterwards. total_cents is always derived from
    quantity * unit_price_cents; clients never supply it.

    Append-only: no service updates or deletes sale rows.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sales_unit_price_non_negative"),
        db.CheckConstraint("total_cents = quantity * unit_price_cents", name="ck_sales_total_matches"),
        db.Index("ix_sales_item_sold_at", "item_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Optional customer details, validated before insert
    customer_name = db.Column(db.String(255), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(10), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    item = db.relationship("StockItem", backref=db.backref("sales", lazy="dynamic"))

    @validates("quantity", "unit_price_cents")
    def _recompute_total(self, key, value):
        quantity = value if key == "quantity" else self.quantity
        unit_price_cents = value if key == "unit_price_cents" else self.unit_price_cents
        if quantity is not None and unit_price_cents is not None:
            self.total_cents = quantity * unit_price_cents
        return value

    def customer_dict(self) -> dict | None:
        if not any((self.customer_name, self.customer_email, self.customer_phone)):
            return None
        return {
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            # Read-side join; not stored on the sale
            "item_name": self.item.name if self.item is not None else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "sold_at": to_utc_z(self.sold_at),
            "customer": self.customer_dict(),
            "created_by_user_id": self.created_by_user_id,
        }
