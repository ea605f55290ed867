from __future__ import annotations

from ..extensions import db
from ..money import money_out
from ..time_utils import to_utc_z, utcnow


class Order(db.Model):
    """
    Sale header (storage table "Transaction").

    Created exactly once per sale together with its lines and the stock
    deductions, in one database transaction. Never updated afterwards;
    deleting it removes the lines but does not restore stock.
    """
    __tablename__ = "Transaction"
    __table_args__ = (
        db.UniqueConstraint("ReferenceNo", name="uq_transaction_reference_no"),
        db.Index("ix_transaction_order_datetime", "OrderDateTime"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column("TransactionID", db.Integer, primary_key=True)
    user_id = db.Column("UserID", db.Integer, db.ForeignKey("User.UserID"), nullable=False)

    reference_no = db.Column("ReferenceNo", db.String(64), nullable=False)
    payment_method = db.Column(
        "PaymentMethod",
        db.Enum("Cash", "Gcash", "Maya", name="PaymentMethod"),
        nullable=False,
        default="Cash",
    )

    vat_amount = db.Column("VATAmount", db.Numeric(14, 6), nullable=False, default=0)
    total = db.Column("Total", db.Numeric(14, 6), nullable=False)
    cash_received = db.Column("CashReceived", db.Numeric(14, 2), nullable=True)
    payment_change = db.Column("PaymentChange", db.Numeric(14, 2), nullable=True)

    senior_pwd_id = db.Column("SeniorPWDID", db.String(64), nullable=True)

    order_datetime = db.Column("OrderDateTime", db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column("CreatedAt", db.DateTime, nullable=False, default=utcnow)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} ref={self.reference_no!r} total={self.total}>"

    def to_dict(self) -> dict:
        return {
            "TransactionID": self.id,
            "UserID": self.user_id,
            "ReferenceNo": self.reference_no,
            "PaymentMethod": self.payment_method,
            "Total": money_out(self.total),
            "VATAmount": money_out(self.vat_amount),
            "CashReceived": money_out(self.cash_received),
            "PaymentChange": money_out(self.payment_change),
            "SeniorPWDID": self.senior_pwd_id,
            "OrderDateTime": to_utc_z(self.order_datetime),
            "CreatedAt": to_utc_z(self.created_at),
        }


class OrderLine(db.Model):
    """
    Sale line (storage table "Transaction_Item").

    Subtotal is the final line amount: quantity * unit price, less the line's
    prorated share of the order discount, plus VAT on the discounted amount.
    """
    __tablename__ = "Transaction_Item"
    __table_args__ = (
        db.CheckConstraint('"Quantity" > 0', name="ck_transaction_item_qty_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column("TransactionItemID", db.Integer, primary_key=True)
    order_id = db.Column(
        "TransactionID",
        db.Integer,
        db.ForeignKey("Transaction.TransactionID", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column("ProductID", db.Integer, db.ForeignKey("Product.ProductID"), nullable=False)
    discount_id = db.Column("DiscountID", db.Integer, db.ForeignKey("Discount.DiscountID"), nullable=True)

    quantity = db.Column("Quantity", db.Integer, nullable=False)
    unit_price = db.Column("UnitPrice", db.Numeric(12, 2), nullable=False)
    subtotal = db.Column("Subtotal", db.Numeric(14, 6), nullable=False)
    discount_amount = db.Column("DiscountAmount", db.Numeric(14, 6), nullable=False, default=0)
    vat_amount = db.Column("VATAmount", db.Numeric(14, 6), nullable=False, default=0)

    created_at = db.Column("CreatedAt", db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self, include_product: bool = True) -> dict:
        data = {
            "TransactionItemID": self.id,
            "TransactionID": self.order_id,
            "ProductID": self.product_id,
            "DiscountID": self.discount_id,
            "Quantity": self.quantity,
            "UnitPrice": money_out(self.unit_price),
            "Subtotal": money_out(self.subtotal),
            "DiscountAmount": money_out(self.discount_amount),
            "VATAmount": money_out(self.vat_amount),
            "CreatedAt": to_utc_z(self.created_at),
        }
        if include_product:
            data["Product"] = {
                "Name": self.product.name if self.product else None,
                "Image": self.product.image if self.product else None,
            }
        return data
