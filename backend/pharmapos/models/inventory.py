from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow


class StockBatch(db.Model):
    """
    One received batch of a product (storage table "Product_Item").

    INVARIANTS:
    - Stock >= 0 at all times (check constraint + conditional decrement)
    - Rows are never deleted; IsActive=false removes a batch from stock
    - Total available stock = SUM(Stock) over active batches of a product

    FIFO order is ExpiryDate ascending, undated batches last, ties broken by
    ProductItemID (insertion order).
    """
    __tablename__ = "Product_Item"
    __table_args__ = (
        db.CheckConstraint('"Stock" >= 0', name="ck_product_item_stock_nonneg"),
        db.Index("ix_product_item_product_active", "ProductID", "IsActive"),
        db.Index("ix_product_item_expiry", "ExpiryDate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column("ProductItemID", db.Integer, primary_key=True)
    product_id = db.Column("ProductID", db.Integer, db.ForeignKey("Product.ProductID"), nullable=False)
    user_id = db.Column("UserID", db.Integer, db.ForeignKey("User.UserID"), nullable=True)

    stock = db.Column("Stock", db.Integer, nullable=False, default=0)
    expiry_date = db.Column("ExpiryDate", db.Date, nullable=True)
    batch_number = db.Column("BatchNumber", db.String(64), nullable=True)
    location = db.Column("Location", db.String(64), nullable=False, default="main_store")

    is_active = db.Column("IsActive", db.Boolean, nullable=False, default=True)

    created_at = db.Column("CreatedAt", db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column("DateTimeLastUpdate", db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<StockBatch id={self.id} product_id={self.product_id} "
            f"stock={self.stock} expiry={self.expiry_date}>"
        )

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "ProductItemID": self.id,
            "ProductID": self.product_id,
            "UserID": self.user_id,
            "Stock": self.stock,
            "ExpiryDate": to_iso_date(self.expiry_date),
            "BatchNumber": self.batch_number,
            "Location": self.location,
            "IsActive": self.is_active,
            "CreatedAt": to_utc_z(self.created_at),
            "DateTimeLastUpdate": to_utc_z(self.updated_at),
        }
        if include_product and self.product is not None:
            p = self.product
            data["Product"] = {
                "Name": p.name,
                "GenericName": p.generic_name,
                "Category": p.category,
                "Brand": p.brand,
                "SellingPrice": p.to_dict()["SellingPrice"],
                "Image": p.image,
            }
        return data
