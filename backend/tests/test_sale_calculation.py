"""
Sale calculator tests.

Pure Decimal arithmetic: no app or database needed.
"""

from decimal import Decimal

import pytest

from pharmapos.errors import InvalidDiscountConfigError
from pharmapos.money import money_out, quantize_money
from pharmapos.services.sale_calculation_service import (
    SaleItemInput,
    compute_order,
    resolve_discount_percent,
)


def item(product_id, quantity, price):
    return SaleItemInput(product_id=product_id, quantity=quantity, unit_price=Decimal(price))


class TestComputeOrder:
    def test_senior_discount_then_vat(self):
        totals = compute_order([item(1, 2, "50")], discount_eligible=True, discount_percent=Decimal("20"))

        assert totals.subtotal == Decimal("100")
        assert totals.discount == Decimal("20")
        assert totals.vat == Decimal("9.6")
        assert totals.total == Decimal("89.6")
        assert totals.discount_applied is True

    def test_no_discount_when_not_eligible(self):
        totals = compute_order([item(1, 3, "10")], discount_eligible=False, discount_percent=Decimal("20"))

        assert totals.discount == 0
        assert totals.vat == Decimal("3.6")
        assert totals.total == Decimal("33.6")
        assert totals.discount_percent == 0
        assert all(line.discount == 0 for line in totals.lines)

    def test_discount_prorated_by_line_share(self):
        totals = compute_order(
            [item(1, 1, "30"), item(2, 1, "70")],
            discount_eligible=True,
            discount_percent=Decimal("20"),
        )

        first, second = totals.lines
        assert first.discount == Decimal("6")
        assert second.discount == Decimal("14")
        assert first.vat == Decimal("2.88")
        assert first.final == Decimal("26.88")

    def test_line_finals_sum_to_order_total(self):
        totals = compute_order(
            [item(1, 3, "12.35"), item(2, 7, "3.99"), item(3, 1, "0.01")],
            discount_eligible=True,
            discount_percent=Decimal("20"),
        )

        line_sum = sum(line.final for line in totals.lines)
        assert abs(line_sum - totals.total) < Decimal("1e-20")
        assert quantize_money(line_sum) == quantize_money(totals.total)
        assert sum(line.discount for line in totals.lines) == pytest.approx(totals.discount)

    def test_zero_subtotal_has_no_line_discount(self):
        totals = compute_order([item(1, 2, "0")], discount_eligible=True, discount_percent=Decimal("20"))

        assert totals.total == 0
        assert totals.lines[0].discount == 0

    def test_custom_vat_rate(self):
        totals = compute_order(
            [item(1, 1, "100")],
            discount_eligible=False,
            discount_percent=None,
            vat_rate=Decimal("0"),
        )
        assert totals.total == Decimal("100")

    def test_eligible_without_percent_is_config_error(self):
        with pytest.raises(InvalidDiscountConfigError):
            compute_order([item(1, 1, "10")], discount_eligible=True, discount_percent=None)

    def test_nothing_rounded_before_presentation(self):
        totals = compute_order([item(1, 1, "0.05")], discount_eligible=False, discount_percent=None)

        assert totals.vat == Decimal("0.006")
        assert money_out(totals.vat) == 0.01
        assert money_out(totals.total) == 0.06


class TestResolveDiscountPercent:
    def test_prefers_looked_up_percent(self):
        assert resolve_discount_percent(Decimal("5"), Decimal("20")) == Decimal("5")

    def test_falls_back_to_default(self):
        assert resolve_discount_percent(None, Decimal("20")) == Decimal("20")

    def test_missing_everywhere(self):
        with pytest.raises(InvalidDiscountConfigError):
            resolve_discount_percent(None, None)

    @pytest.mark.parametrize("bad", [Decimal("-1"), Decimal("100.01")])
    def test_out_of_range(self, bad):
        with pytest.raises(InvalidDiscountConfigError):
            resolve_discount_percent(bad, None)
