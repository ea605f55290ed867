from datetime import date
from decimal import Decimal

import pytest

from pharmapos.errors import ValidationError
from pharmapos.models import Product, StockBatch
from pharmapos.money import money_out, to_decimal
from pharmapos.validation import (
    ModelValidationPolicy,
    enforce_rules_product,
    normalize_payment_method,
    validate_payload,
)

BATCH_POLICY = ModelValidationPolicy(
    writable_fields={"ProductID", "Stock", "ExpiryDate"},
    required_on_create={"ProductID", "Stock"},
)


def test_patch_keyed_by_attribute_names():
    patch = validate_payload(
        model=StockBatch,
        payload={"ProductID": "3", "Stock": 7, "ExpiryDate": "2026-12-31"},
        policy=BATCH_POLICY,
        partial=False,
    )
    assert patch == {"product_id": 3, "stock": 7, "expiry_date": date(2026, 12, 31)}


@pytest.mark.parametrize("stock", [1.5, "2.0", "1e3", "abc", True])
def test_integer_columns_are_strict(stock):
    with pytest.raises(ValidationError):
        validate_payload(model=StockBatch, payload={"ProductID": 1, "Stock": stock}, policy=BATCH_POLICY, partial=False)


def test_non_nullable_rejects_null():
    with pytest.raises(ValidationError, match="Stock cannot be null"):
        validate_payload(model=StockBatch, payload={"Stock": None}, policy=BATCH_POLICY, partial=True)


def test_string_length_enforced():
    policy = ModelValidationPolicy(writable_fields={"Name"})
    with pytest.raises(ValidationError, match="exceeds max length"):
        validate_payload(model=Product, payload={"Name": "x" * 256}, policy=policy, partial=True)


def test_price_ceiling():
    with pytest.raises(ValidationError):
        enforce_rules_product({"selling_price": Decimal("10000000")})


@pytest.mark.parametrize("raw,expected", [(None, "Cash"), ("", "Cash"), ("GCASH", "Gcash"), (" maya ", "Maya")])
def test_payment_method_normalized(raw, expected):
    assert normalize_payment_method(raw) == expected


def test_to_decimal_keeps_float_literal():
    assert to_decimal(0.1) == Decimal("0.1")
    with pytest.raises(ValueError):
        to_decimal("NaN")


def test_money_out_rounds_half_up():
    assert money_out(Decimal("0.125")) == 0.13
    assert money_out(None) is None
