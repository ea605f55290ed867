"""
FIFO allocation of a requested quantity across a product's batches.

plan_allocation() is pure: it orders batch snapshots (earliest expiry
first, undated last, stable on read order) and decides how much to take
from each. allocate() runs that plan against a SaleRepository.

The availability check happens before any deduction, so a request that
cannot be filled mutates nothing. A shortfall discovered only on re-plan
(stock taken by a concurrent sale) leaves earlier deductions in the open
transaction; the recorder rolls them back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from ..errors import ConflictError, InsufficientStockError, InvalidAmountError

logger = logging.getLogger(__name__)

STALE_REPLANS = 2


@dataclass(frozen=True)
class BatchSnapshot:
    batch_id: int
    quantity: int
    expiry_date: date | None = None


@dataclass(frozen=True)
class Allocation:
    batch_id: int
    quantity: int

    def to_dict(self) -> dict:
        return {"productItemId": self.batch_id, "quantity": self.quantity}


def fifo_order(batches: list[BatchSnapshot]) -> list[BatchSnapshot]:
    """Earliest expiry first, undated batches last; sorted() keeps read order on ties."""
    return sorted(batches, key=lambda b: (b.expiry_date is None, b.expiry_date or date.min))


def plan_allocation(product_id: int, batches: list[BatchSnapshot], requested: int) -> list[Allocation]:
    if requested < 0:
        raise InvalidAmountError("Requested quantity must be >= 0", details={"requested": requested})
    if requested == 0:
        return []

    ordered = fifo_order(batches)
    available = sum(b.quantity for b in ordered if b.quantity > 0)
    if available < requested:
        raise InsufficientStockError(product_id=product_id, available=available, requested=requested)

    plan = []
    remaining = requested
    for batch in ordered:
        if remaining <= 0:
            break
        if batch.quantity <= 0:
            continue
        take = min(remaining, batch.quantity)
        plan.append(Allocation(batch_id=batch.batch_id, quantity=take))
        remaining -= take
    return plan


def allocate(product_id: int, requested: int, repository) -> list[Allocation]:
    """
    Deduct requested units of product_id, oldest-expiry batches first.

    If a batch was drained by a concurrent sale after the snapshot was read,
    its guarded decrement fails; the remainder is re-planned from a fresh
    read (at most STALE_REPLANS times) instead of failing the sale.
    """
    batches = repository.list_active_batches(product_id)
    plan = plan_allocation(product_id, batches, requested)

    taken: dict[int, int] = {}
    remaining = requested
    for attempt in range(STALE_REPLANS + 1):
        stale = False
        for step in plan:
            try:
                repository.deduct_batch(step.batch_id, step.quantity)
            except InvalidAmountError:
                stale = True
                break
            taken[step.batch_id] = taken.get(step.batch_id, 0) + step.quantity
            remaining -= step.quantity

        if not stale:
            break
        if attempt == STALE_REPLANS:
            raise ConflictError(
                "Stock changed while the sale was being recorded. Please retry.",
                details={"productId": product_id},
            )

        logger.warning(
            "Stale batch snapshot for product %s; re-planning %d remaining units",
            product_id, remaining,
        )
        try:
            plan = plan_allocation(product_id, repository.list_active_batches(product_id), remaining)
        except InsufficientStockError as exc:
            raise InsufficientStockError(
                product_id=product_id,
                available=requested - remaining + exc.available,
                requested=requested,
            ) from exc

    allocations = [Allocation(batch_id=b, quantity=q) for b, q in taken.items()]
    if allocations:
        logger.info(
            "Allocated %d of product %s across batches %s",
            requested, product_id, [(a.batch_id, a.quantity) for a in allocations],
        )
    return allocations
