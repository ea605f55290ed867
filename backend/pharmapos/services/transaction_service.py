# Overview: Sale recording (pricing + header/lines + FIFO stock deduction) and sale history queries.

"""
Transaction recorder.

record_sale() is all-or-nothing: the order header, its lines and every
batch deduction are written in one database transaction. Any failure
(duplicate reference, insufficient stock, store error) rolls the whole
sale back, so there is never a header without lines or a sale without its
stock movement.

Policy fallbacks (configurable):
- cashier: an unknown auth user id falls back to the first active user
  when ALLOW_USER_FALLBACK is on
- discount: if the named senior/PWD discount row is missing, the
  DEFAULT_DISCOUNT_PERCENT is applied with no DiscountID

Deleting a sale removes its lines but never restores stock.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    PosError,
    UserResolutionError,
)
from ..extensions import db
from ..models import Order, OrderLine
from ..money import money_out, to_decimal
from ..time_utils import utcnow
from ..validation import validate_sale_request
from .allocation_service import Allocation, allocate
from .concurrency import run_with_retry
from .sale_calculation_service import (
    OrderTotals,
    SaleItemInput,
    VAT_RATE,
    compute_order,
    resolve_discount_percent,
)
from .sale_repository import OrderHeader, OrderLineRecord, SqlSaleRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleRequest:
    items: list[SaleItemInput]
    payment_method: str = "Cash"
    reference_no: str | None = None
    discount_eligible: bool = False
    senior_pwd_id: str | None = None
    cash_received: Decimal | None = None
    change: Decimal | None = None
    auth_user_id: str | None = None
    client_subtotal: Decimal | None = None

    @classmethod
    def from_payload(cls, payload) -> "SaleRequest":
        clean = validate_sale_request(payload)
        return cls(
            items=[SaleItemInput(**item) for item in clean.pop("items")],
            **clean,
        )


@dataclass(frozen=True)
class SalePolicy:
    vat_rate: Decimal = VAT_RATE
    discount_name: str = "Senior Citizen Discount"
    default_discount_percent: Decimal | None = Decimal("20")
    allow_user_fallback: bool = True

    @classmethod
    def from_config(cls, config) -> "SalePolicy":
        default_percent = config.get("DEFAULT_DISCOUNT_PERCENT")
        return cls(
            vat_rate=to_decimal(config.get("VAT_RATE", VAT_RATE)),
            discount_name=config.get("SENIOR_DISCOUNT_NAME", cls.discount_name),
            default_discount_percent=(
                to_decimal(default_percent) if default_percent not in (None, "") else None
            ),
            allow_user_fallback=bool(config.get("ALLOW_USER_FALLBACK", True)),
        )


@dataclass(frozen=True)
class SaleReceipt:
    order_id: int
    reference_no: str
    totals: OrderTotals
    allocations: dict[int, list[Allocation]]

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": "Transaction created successfully",
            "transactionId": self.order_id,
            "referenceNo": self.reference_no,
            "calculatedAmounts": {
                "subtotal": money_out(self.totals.subtotal),
                "discount": money_out(self.totals.discount),
                "vat": money_out(self.totals.vat),
                "total": money_out(self.totals.total),
                "isSeniorPWDActive": self.totals.discount_applied,
            },
            "allocations": [
                {"productId": product_id, "batches": [a.to_dict() for a in plan]}
                for product_id, plan in self.allocations.items()
            ],
        }


def generate_reference_no(payment_method: str) -> str:
    """e.g. CASH-20260119083015-3F9A1C"""
    stamp = utcnow().strftime("%Y%m%d%H%M%S")
    return f"{payment_method.upper()}-{stamp}-{secrets.token_hex(3).upper()}"


def resolve_cashier(repository, auth_user_id: str | None, allow_fallback: bool) -> int:
    if auth_user_id:
        user_id = repository.find_user_id(auth_user_id)
        if user_id is not None:
            return user_id
        logger.warning("AuthUserID %s not mapped to a user", auth_user_id)

    if allow_fallback:
        user_id = repository.first_active_user_id()
        if user_id is not None:
            logger.info("Using fallback user %s for sale", user_id)
            return user_id

    raise UserResolutionError(
        "No user found for this sale. Please create a user first.",
        details={"userId": auth_user_id},
    )


def resolve_discount(repository, policy: SalePolicy) -> tuple[int | None, Decimal]:
    record = repository.find_discount(policy.discount_name)
    if record is None:
        logger.warning(
            "Discount %r not found, using default %s%%",
            policy.discount_name, policy.default_discount_percent,
        )
        return None, resolve_discount_percent(None, policy.default_discount_percent)
    return record.discount_id, resolve_discount_percent(record.percent, None)


def _record_sale_once(request: SaleRequest, repository, policy: SalePolicy) -> SaleReceipt:
    requested_ids = {item.product_id for item in request.items}
    missing = requested_ids - repository.existing_product_ids(requested_ids)
    if missing:
        raise NotFoundError("Product not found", details={"productIds": sorted(missing)})

    user_id = resolve_cashier(repository, request.auth_user_id, policy.allow_user_fallback)

    discount_id = None
    discount_percent = None
    if request.discount_eligible:
        discount_id, discount_percent = resolve_discount(repository, policy)

    totals = compute_order(
        request.items,
        discount_eligible=request.discount_eligible,
        discount_percent=discount_percent,
        vat_rate=policy.vat_rate,
    )
    if request.client_subtotal is not None and request.client_subtotal != totals.subtotal:
        logger.warning(
            "Client subtotal %s differs from computed %s; using computed",
            request.client_subtotal, totals.subtotal,
        )

    reference_no = request.reference_no or generate_reference_no(request.payment_method)
    if repository.reference_exists(reference_no):
        raise ConflictError("Reference number already used", details={"referenceNo": reference_no})

    try:
        order_id = repository.insert_order(OrderHeader(
            reference_no=reference_no,
            payment_method=request.payment_method,
            user_id=user_id,
            total=totals.total,
            vat_amount=totals.vat,
            cash_received=request.cash_received,
            payment_change=request.change,
            senior_pwd_id=request.senior_pwd_id if request.discount_eligible else None,
            order_datetime=utcnow(),
        ))

        repository.insert_lines(order_id, [
            OrderLineRecord(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.final,
                discount_amount=line.discount,
                vat_amount=line.vat,
                discount_id=discount_id if request.discount_eligible else None,
            )
            for line in totals.lines
        ])

        allocations: dict[int, list[Allocation]] = {}
        for item in request.items:
            plan = allocate(item.product_id, item.quantity, repository)
            allocations.setdefault(item.product_id, []).extend(plan)

        repository.commit()
    except Exception:
        repository.rollback()
        raise

    logger.info(
        "Recorded sale %s (%s) total=%s lines=%d",
        order_id, reference_no, totals.total, len(totals.lines),
    )
    return SaleReceipt(order_id=order_id, reference_no=reference_no, totals=totals, allocations=allocations)


def record_sale(request: SaleRequest, repository=None, policy: SalePolicy | None = None) -> SaleReceipt:
    """
    Price, persist and stock-deduct one sale atomically.

    Raises ValidationError / UserResolutionError / ConflictError /
    InsufficientStockError / InvalidDiscountConfigError as appropriate;
    any other store failure is wrapped in PersistenceError.
    """
    if repository is None:
        repository = SqlSaleRepository()
    if policy is None:
        policy = SalePolicy.from_config(current_app.config)

    try:
        return run_with_retry(lambda: _record_sale_once(request, repository, policy))
    except PosError:
        raise
    except SQLAlchemyError as exc:
        logger.exception("Sale persistence failed")
        raise PersistenceError("Failed to create transaction", cause=exc)


def list_transactions(page: int = 1, limit: int = 50) -> dict:
    """
    Newest-first sale history. Only sales that have lines are listed; each
    carries its first line as a preview plus ItemCount.
    """
    page = max(page or 1, 1)
    limit = min(max(limit or 50, 1), 200)
    offset = (page - 1) * limit

    with_lines = select(OrderLine.order_id).distinct()
    total = (
        db.session.query(func.count(Order.id))
        .filter(Order.id.in_(with_lines))
        .scalar()
    ) or 0

    orders = (
        db.session.query(Order)
        .filter(Order.id.in_(with_lines))
        .options(selectinload(Order.lines).selectinload(OrderLine.product))
        .order_by(Order.order_datetime.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    data = []
    for order in orders:
        row = order.to_dict()
        row["Transaction_Item"] = [
            {
                "Quantity": line.quantity,
                "UnitPrice": money_out(line.unit_price),
                "Subtotal": money_out(line.subtotal),
                "Product": {"Name": line.product.name if line.product else None},
            }
            for line in order.lines[:1]
        ]
        row["ItemCount"] = len(order.lines)
        data.append(row)

    return {
        "success": True,
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
            "hasMore": offset + limit < total,
        },
    }


def _get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Transaction not found", details={"transactionId": order_id})
    return order


def get_transaction(order_id: int) -> dict:
    order = _get_order(order_id)
    data = order.to_dict()
    data["Transaction_Item"] = [line.to_dict() for line in order.lines]
    return data


def delete_transaction(order_id: int) -> None:
    """Remove a sale and its lines. Stock already deducted stays deducted."""
    order = _get_order(order_id)
    try:
        db.session.delete(order)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Failed to delete transaction", cause=exc)
    logger.info("Deleted transaction %s (stock not restored)", order_id)
