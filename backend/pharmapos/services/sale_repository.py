# Overview: I/O boundary for sale recording; the SQLAlchemy implementation used in production.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..extensions import db
from ..models import Discount, Order, OrderLine, Product, User
from . import stock_ledger_service
from .allocation_service import BatchSnapshot


@dataclass(frozen=True)
class DiscountRecord:
    discount_id: int
    name: str
    percent: Decimal


@dataclass(frozen=True)
class OrderHeader:
    reference_no: str
    payment_method: str
    user_id: int
    total: Decimal
    vat_amount: Decimal
    cash_received: Decimal | None
    payment_change: Decimal | None
    senior_pwd_id: str | None
    order_datetime: datetime


@dataclass(frozen=True)
class OrderLineRecord:
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    vat_amount: Decimal
    discount_id: int | None


class SaleRepository(Protocol):
    def find_user_id(self, auth_user_id: str) -> int | None: ...

    def first_active_user_id(self) -> int | None: ...

    def find_discount(self, name: str) -> DiscountRecord | None: ...

    def existing_product_ids(self, product_ids: set[int]) -> set[int]: ...

    def reference_exists(self, reference_no: str) -> bool: ...

    def insert_order(self, header: OrderHeader) -> int: ...

    def insert_lines(self, order_id: int, lines: list[OrderLineRecord]) -> None: ...

    def list_active_batches(self, product_id: int) -> list[BatchSnapshot]: ...

    def deduct_batch(self, batch_id: int, amount: int) -> int: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class SqlSaleRepository:
    """
    SaleRepository over the Flask-SQLAlchemy session.

    Writes are flushed, never committed, until commit(): a sale's header,
    lines and stock deductions land in one database transaction.
    """

    def find_user_id(self, auth_user_id: str) -> int | None:
        return (
            db.session.query(User.id)
            .filter(User.auth_user_id == auth_user_id, User.is_active.is_(True))
            .scalar()
        )

    def first_active_user_id(self) -> int | None:
        return (
            db.session.query(User.id)
            .filter(User.is_active.is_(True))
            .order_by(User.id.asc())
            .limit(1)
            .scalar()
        )

    def find_discount(self, name: str) -> DiscountRecord | None:
        row = db.session.query(Discount).filter(Discount.name == name).first()
        if row is None:
            return None
        return DiscountRecord(discount_id=row.id, name=row.name, percent=Decimal(row.percent))

    def existing_product_ids(self, product_ids: set[int]) -> set[int]:
        rows = db.session.query(Product.id).filter(Product.id.in_(product_ids)).all()
        return {row[0] for row in rows}

    def reference_exists(self, reference_no: str) -> bool:
        return db.session.query(
            db.session.query(Order.id).filter(Order.reference_no == reference_no).exists()
        ).scalar()

    def insert_order(self, header: OrderHeader) -> int:
        order = Order(
            reference_no=header.reference_no,
            payment_method=header.payment_method,
            user_id=header.user_id,
            total=header.total,
            vat_amount=header.vat_amount,
            cash_received=header.cash_received,
            payment_change=header.payment_change,
            senior_pwd_id=header.senior_pwd_id,
            order_datetime=header.order_datetime,
        )
        db.session.add(order)
        try:
            db.session.flush()
        except IntegrityError as exc:
            db.session.rollback()
            if "ReferenceNo" in str(exc.orig) or "reference_no" in str(exc.orig):
                raise ConflictError(
                    "Reference number already used",
                    details={"referenceNo": header.reference_no},
                )
            raise
        return order.id

    def insert_lines(self, order_id: int, lines: list[OrderLineRecord]) -> None:
        db.session.add_all([
            OrderLine(
                order_id=order_id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
                discount_amount=line.discount_amount,
                vat_amount=line.vat_amount,
                discount_id=line.discount_id,
            )
            for line in lines
        ])
        db.session.flush()

    def list_active_batches(self, product_id: int) -> list[BatchSnapshot]:
        return [
            BatchSnapshot(batch_id=b.id, quantity=b.stock, expiry_date=b.expiry_date)
            for b in stock_ledger_service.list_active_batches(product_id, lock=True)
        ]

    def deduct_batch(self, batch_id: int, amount: int) -> int:
        return stock_ledger_service.deduct_batch(batch_id, amount).stock

    def commit(self) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()
