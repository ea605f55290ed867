"""
Stock ledger tests: FIFO reads and the guarded batch decrement.
"""

from datetime import date

import pytest

from pharmapos.errors import InvalidAmountError, NotFoundError
from pharmapos.models import StockBatch
from pharmapos.services import stock_ledger_service


def test_list_active_batches_fifo_nulls_last(db_session, paracetamol, make_batch):
    undated = make_batch(paracetamol, 4)
    late = make_batch(paracetamol, 2, date(2026, 5, 1))
    early = make_batch(paracetamol, 3, date(2026, 1, 1))
    same_day = make_batch(paracetamol, 1, date(2026, 1, 1))
    make_batch(paracetamol, 99, date(2025, 1, 1), is_active=False)

    batches = stock_ledger_service.list_active_batches(paracetamol.id)

    assert [b.id for b in batches] == [early.id, same_day.id, late.id, undated.id]


def test_total_active_stock_ignores_inactive(db_session, paracetamol, make_batch):
    make_batch(paracetamol, 4)
    make_batch(paracetamol, 6, date(2026, 1, 1))
    make_batch(paracetamol, 50, is_active=False)

    assert stock_ledger_service.total_active_stock(paracetamol.id) == 10


def test_total_active_stock_no_batches(db_session, paracetamol):
    assert stock_ledger_service.total_active_stock(paracetamol.id) == 0


def test_deduct_batch_decrements_and_stamps(db_session, paracetamol_batches):
    first, _ = paracetamol_batches
    before = first.updated_at

    batch = stock_ledger_service.deduct_batch(first.id, 3)
    db_session.commit()

    assert batch.stock == 2
    assert db_session.get(StockBatch, first.id).stock == 2
    assert batch.updated_at >= before


def test_deduct_batch_to_zero(db_session, paracetamol_batches):
    first, _ = paracetamol_batches
    assert stock_ledger_service.deduct_batch(first.id, 5).stock == 0


def test_deduct_more_than_stock_is_rejected(db_session, paracetamol_batches):
    first, _ = paracetamol_batches

    with pytest.raises(InvalidAmountError):
        stock_ledger_service.deduct_batch(first.id, 6)

    db_session.rollback()
    assert db_session.get(StockBatch, first.id).stock == 5


def test_negative_deduction_rejected(db_session, paracetamol_batches):
    first, _ = paracetamol_batches
    with pytest.raises(InvalidAmountError):
        stock_ledger_service.deduct_batch(first.id, -1)


def test_deduct_missing_batch(db_session):
    with pytest.raises(NotFoundError):
        stock_ledger_service.deduct_batch(12345, 1)


def test_get_batch_missing(db_session):
    with pytest.raises(NotFoundError) as excinfo:
        stock_ledger_service.get_batch(999)
    assert excinfo.value.status_code == 404
