from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import InvalidDiscountConfigError

VAT_RATE = Decimal("0.12")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class LineTotals:
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    discount: Decimal
    vat: Decimal
    final: Decimal


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    vat: Decimal
    total: Decimal
    discount_percent: Decimal
    discount_applied: bool
    lines: tuple[LineTotals, ...]


def resolve_discount_percent(percent: Decimal | None, default_percent: Decimal | None) -> Decimal:
    """Pick the looked-up percentage, else the policy default; both must be within 0..100."""
    resolved = percent if percent is not None else default_percent
    if resolved is None:
        raise InvalidDiscountConfigError("No discount percentage configured")
    if resolved < ZERO or resolved > HUNDRED:
        raise InvalidDiscountConfigError(
            "Discount percentage must be between 0 and 100",
            details={"discountPercent": str(resolved)},
        )
    return resolved


def compute_order(
    items: list[SaleItemInput],
    discount_eligible: bool,
    discount_percent: Decimal | None,
    vat_rate: Decimal = VAT_RATE,
) -> OrderTotals:
    """
    Price a sale.

    The order discount is computed once on the order subtotal and prorated
    across lines by each line's share of that subtotal. VAT is charged on the
    post-discount amount. Nothing is rounded here.
    """
    order_subtotal = sum((Decimal(item.quantity) * item.unit_price for item in items), ZERO)

    if discount_eligible:
        percent = resolve_discount_percent(discount_percent, None)
        order_discount = order_subtotal * percent / HUNDRED
    else:
        percent = ZERO
        order_discount = ZERO

    order_vat = (order_subtotal - order_discount) * vat_rate
    order_total = order_subtotal - order_discount + order_vat

    lines = []
    for item in items:
        item_subtotal = Decimal(item.quantity) * item.unit_price
        if discount_eligible and order_subtotal != ZERO:
            item_discount = item_subtotal * (order_discount / order_subtotal)
        else:
            item_discount = ZERO
        item_vat = (item_subtotal - item_discount) * vat_rate
        lines.append(LineTotals(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=item_subtotal,
            discount=item_discount,
            vat=item_vat,
            final=item_subtotal - item_discount + item_vat,
        ))

    return OrderTotals(
        subtotal=order_subtotal,
        discount=order_discount,
        vat=order_vat,
        total=order_total,
        discount_percent=percent,
        discount_applied=discount_eligible,
        lines=tuple(lines),
    )
