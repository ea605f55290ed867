from __future__ import annotations

from ..extensions import db
from ..money import money_out
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data.

    Storage names are PascalCase (the schema shared with the frontend);
    Python attributes are snake_case. Stock is NOT stored here: it is the
    sum of active Product_Item batches.
    """
    __tablename__ = "Product"
    __table_args__ = (
        db.Index("ix_product_active_name", "IsActive", "Name"),
        db.CheckConstraint('"SellingPrice" >= 0', name="ck_product_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column("ProductID", db.Integer, primary_key=True)
    user_id = db.Column("UserID", db.Integer, db.ForeignKey("User.UserID"), nullable=True)

    name = db.Column("Name", db.String(255), nullable=False)
    generic_name = db.Column("GenericName", db.String(255), nullable=True, index=True)
    category = db.Column("Category", db.String(128), nullable=True, index=True)
    brand = db.Column("Brand", db.String(128), nullable=True)
    image = db.Column("Image", db.Text, nullable=True)

    selling_price = db.Column("SellingPrice", db.Numeric(12, 2), nullable=False)

    is_vat_exempt = db.Column("IsVATExemptYN", db.Boolean, nullable=False, default=False)
    prescription_required = db.Column("PrescriptionYN", db.Boolean, nullable=False, default=False)
    senior_pwd_eligible = db.Column("SeniorPWDYN", db.Boolean, nullable=True)

    is_active = db.Column("IsActive", db.Boolean, nullable=False, default=True)

    created_at = db.Column("CreatedAt", db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column("DateTimeLastUpdate", db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "ProductID": self.id,
            "UserID": self.user_id,
            "Name": self.name,
            "GenericName": self.generic_name,
            "Category": self.category,
            "Brand": self.brand,
            "Image": self.image,
            "SellingPrice": money_out(self.selling_price),
            "IsVATExemptYN": self.is_vat_exempt,
            "PrescriptionYN": self.prescription_required,
            "SeniorPWDYN": self.senior_pwd_eligible,
            "IsActive": self.is_active,
            "CreatedAt": to_utc_z(self.created_at),
            "DateTimeLastUpdate": to_utc_z(self.updated_at),
        }


class Discount(db.Model):
    """Named percentage discount (e.g. "Senior Citizen Discount"); looked up by name at sale time."""
    __tablename__ = "Discount"
    __table_args__ = (
        db.UniqueConstraint("Name", name="uq_discount_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column("DiscountID", db.Integer, primary_key=True)
    name = db.Column("Name", db.String(128), nullable=False)
    percent = db.Column("DiscountPercent", db.Numeric(5, 2), nullable=False)
    is_vat_exempt = db.Column("IsVATExemptYN", db.Boolean, nullable=False, default=False)

    created_at = db.Column("CreatedAt", db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column("UpdatedAt", db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "DiscountID": self.id,
            "Name": self.name,
            "DiscountPercent": float(self.percent) if self.percent is not None else None,
            "IsVATExemptYN": self.is_vat_exempt,
        }
