# Overview: Batch-level stock reads and the guarded stock decrement.

"""
Stock ledger accessor.

Inventory is tracked per batch (Product_Item). Available stock for a
product is SUM(Stock) over its active batches.

FIFO ordering (authoritative, used by every caller):
- ExpiryDate ascending
- batches without an ExpiryDate sort after every dated batch
- ties broken by ProductItemID ascending (insertion order)

Decrement semantics:
- deduct_batch() issues one conditional UPDATE
      SET Stock = Stock - :amount WHERE ProductItemID = :id AND Stock >= :amount
  so two concurrent sales can never drive a batch below zero. If the guard
  fails the current row is re-read to report why.
- Nothing here commits; the caller owns the transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, update

from ..errors import InvalidAmountError, NotFoundError
from ..extensions import db
from ..models import StockBatch
from ..time_utils import utcnow
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


def fifo_order_by():
    """ORDER BY clause implementing FIFO (nulls last works on SQLite and PostgreSQL)."""
    return (
        StockBatch.expiry_date.is_(None).asc(),
        StockBatch.expiry_date.asc(),
        StockBatch.id.asc(),
    )


def list_active_batches(product_id: int, *, lock: bool = False) -> list[StockBatch]:
    """Active batches in FIFO order. lock=True holds the rows until commit (sale path)."""
    query = (
        db.session.query(StockBatch)
        .filter(
            StockBatch.product_id == product_id,
            StockBatch.is_active.is_(True),
        )
        .order_by(*fifo_order_by())
    )
    if lock:
        query = lock_for_update(query)
    return query.all()


def total_active_stock(product_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(StockBatch.stock), 0))
        .filter(
            StockBatch.product_id == product_id,
            StockBatch.is_active.is_(True),
        )
        .scalar()
    )
    return int(total or 0)


def get_batch(batch_id: int, *, lock: bool = False) -> StockBatch:
    query = db.session.query(StockBatch).filter(StockBatch.id == batch_id)
    if lock:
        query = lock_for_update(query)
    batch = query.first()
    if batch is None:
        raise NotFoundError("Product item not found", details={"productItemId": batch_id})
    return batch


def deduct_batch(batch_id: int, amount: int) -> StockBatch:
    """
    Decrease a batch's Stock by amount (>= 0) and stamp DateTimeLastUpdate.

    Raises NotFoundError if the batch is missing, InvalidAmountError if the
    amount is negative or exceeds the batch's current Stock.
    """
    if amount < 0:
        raise InvalidAmountError("Deduction amount must be >= 0", details={"amount": amount})

    stmt = (
        update(StockBatch)
        .where(StockBatch.id == batch_id, StockBatch.stock >= amount)
        .values({StockBatch.stock: StockBatch.stock - amount, StockBatch.updated_at: utcnow()})
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    batch = db.session.get(StockBatch, batch_id)
    if batch is None:
        raise NotFoundError("Product item not found", details={"productItemId": batch_id})
    # Bulk UPDATE bypasses the identity map; reload the row we hold
    db.session.refresh(batch)

    if not result.rowcount:
        raise InvalidAmountError(
            "Deduction exceeds batch stock",
            details={"productItemId": batch_id, "stock": batch.stock, "amount": amount},
        )

    logger.info(
        "Deducted %d from ProductItem %s (product %s), now %d",
        amount, batch_id, batch.product_id, batch.stock,
    )
    return batch
