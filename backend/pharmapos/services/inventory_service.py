# Overview: Batch-level inventory management; encapsulates business logic and database work.

# backend/pharmapos/services/inventory_service.py
"""
Inventory (Product_Item) invariants & semantics

Inventory model:
- One Product_Item row per received batch (quantity, expiry, batch number).
- Product stock = SUM(Stock) over active batches; never stored on Product.
- Batches are never deleted. "Delete" sets IsActive=false, which removes the
  batch from stock totals and from FIFO allocation.

Manual corrections:
- update_stock() may set Stock to any value >= 0 (counts, damaged goods).
  Sales never go through here; they use stock_ledger_service.deduct_batch().

Alerts:
- LOW_STOCK: an active product whose total stock is <= threshold
- EXPIRING: an active batch with Stock > 0 whose ExpiryDate is within
  expiry_days of today (already-expired batches included)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.orm import joinedload

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, StockBatch
from ..time_utils import today, to_iso_date, utcnow
from . import stock_ledger_service
from .products_service import stock_by_product

logger = logging.getLogger(__name__)

BATCH_MUTABLE_FIELDS = {"stock", "expiry_date", "batch_number", "location", "is_active"}


def list_batches() -> list[dict]:
    """All batches of all products, newest first, with product info."""
    batches = (
        db.session.query(StockBatch)
        .options(joinedload(StockBatch.product))
        .order_by(StockBatch.created_at.desc(), StockBatch.id.desc())
        .all()
    )
    return [b.to_dict(include_product=True) for b in batches]


def list_product_batches(product_id: int) -> list[dict]:
    """Active batches of one product in FIFO order."""
    return [b.to_dict() for b in stock_ledger_service.list_active_batches(product_id)]


def get_product_stock(product_id: int) -> dict:
    batches = stock_ledger_service.list_active_batches(product_id)
    return {
        "productId": product_id,
        "totalStock": sum(b.stock or 0 for b in batches),
        "items": [
            {
                "ProductItemID": b.id,
                "Stock": b.stock,
                "ExpiryDate": to_iso_date(b.expiry_date),
                "BatchNumber": b.batch_number,
            }
            for b in batches
        ],
    }


def list_products_with_stock() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    product_ids = [p.id for p in products]
    batches = (
        db.session.query(StockBatch)
        .filter(StockBatch.product_id.in_(product_ids), StockBatch.is_active.is_(True))
        .order_by(*stock_ledger_service.fifo_order_by())
        .all()
        if product_ids else []
    )

    by_product: dict[int, list[StockBatch]] = {}
    for b in batches:
        by_product.setdefault(b.product_id, []).append(b)

    result = []
    for p in products:
        items = by_product.get(p.id, [])
        row = {
            "ProductID": p.id,
            "Name": p.name,
            "GenericName": p.generic_name,
            "Category": p.category,
            "Brand": p.brand,
            "SellingPrice": p.to_dict()["SellingPrice"],
            "totalStock": sum(b.stock or 0 for b in items),
            "stockItems": [
                {
                    "productItemId": b.id,
                    "stock": b.stock,
                    "expiryDate": to_iso_date(b.expiry_date),
                    "batchNumber": b.batch_number,
                }
                for b in items
            ],
        }
        result.append(row)

    return {"success": True, "products": result}


def add_stock(*, patch: dict) -> StockBatch:
    """Receive a new batch. patch is validated (ProductID, Stock, UserID required)."""
    product = db.session.get(Product, patch["product_id"])
    if product is None:
        raise NotFoundError("Product not found", details={"productId": patch["product_id"]})

    batch = StockBatch(
        product_id=patch["product_id"],
        user_id=patch.get("user_id"),
        stock=patch.get("stock") or 0,
        expiry_date=patch.get("expiry_date"),
        batch_number=patch.get("batch_number") or None,
        location=patch.get("location") or "main_store",
        is_active=True,
    )
    db.session.add(batch)
    db.session.commit()
    logger.info(
        "Received batch %s for product %s: %d units (expiry %s)",
        batch.id, batch.product_id, batch.stock, batch.expiry_date,
    )
    return batch


def update_stock(*, batch_id: int, patch: dict) -> StockBatch:
    """Partial update of a batch; stamps DateTimeLastUpdate."""
    batch = stock_ledger_service.get_batch(batch_id, lock=True)
    for k, v in patch.items():
        if k not in BATCH_MUTABLE_FIELDS:
            continue
        setattr(batch, k, v)
    if batch.location is None:
        batch.location = "main_store"
    batch.updated_at = utcnow()
    db.session.commit()
    return batch


def deactivate_batch(*, batch_id: int) -> StockBatch:
    batch = stock_ledger_service.get_batch(batch_id, lock=True)
    batch.is_active = False
    batch.updated_at = utcnow()
    db.session.commit()
    logger.info("Deactivated batch %s (product %s, %d units)", batch_id, batch.product_id, batch.stock)
    return batch


def stock_alerts(*, low_stock_threshold: int, expiry_days: int) -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    stock_map = stock_by_product([p.id for p in products])

    low_stock = []
    for p in products:
        total = stock_map.get(p.id, 0)
        if total <= low_stock_threshold:
            low_stock.append({
                "type": "LOW_STOCK",
                "productId": p.id,
                "productName": p.name,
                "totalStock": total,
                "threshold": low_stock_threshold,
            })

    horizon = today() + timedelta(days=expiry_days)
    expiring_batches = (
        db.session.query(StockBatch)
        .options(joinedload(StockBatch.product))
        .join(Product, Product.id == StockBatch.product_id)
        .filter(
            StockBatch.is_active.is_(True),
            StockBatch.stock > 0,
            StockBatch.expiry_date.isnot(None),
            StockBatch.expiry_date <= horizon,
            Product.is_active.is_(True),
        )
        .order_by(StockBatch.expiry_date.asc(), StockBatch.id.asc())
        .all()
    )
    current = today()
    expiring = [
        {
            "type": "EXPIRING",
            "productId": b.product_id,
            "productName": b.product.name,
            "productItemId": b.id,
            "batchNumber": b.batch_number,
            "stock": b.stock,
            "expiryDate": to_iso_date(b.expiry_date),
            "daysLeft": (b.expiry_date - current).days,
            "expired": b.expiry_date < current,
        }
        for b in expiring_batches
    ]

    return {
        "lowStock": low_stock,
        "expiring": expiring,
        "count": len(low_stock) + len(expiring),
    }
