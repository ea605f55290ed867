# backend/pharmapos/services/products_service.py
"""
Products Service

Product rows never carry stock; every listing here attaches `stock`, the
sum of the product's active Product_Item batches, computed with one
grouped query for the page being returned.

Deleting a product is a soft delete (IsActive=false): batches and sale
lines keep referencing it.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, or_

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, StockBatch

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "generic_name",
    "category",
    "brand",
    "image",
    "selling_price",
    "is_vat_exempt",
    "prescription_required",
    "senior_pwd_eligible",
    "is_active",
    "user_id",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def stock_by_product(product_ids: list[int]) -> dict[int, int]:
    if not product_ids:
        return {}
    rows = (
        db.session.query(StockBatch.product_id, func.coalesce(func.sum(StockBatch.stock), 0))
        .filter(
            StockBatch.product_id.in_(product_ids),
            StockBatch.is_active.is_(True),
        )
        .group_by(StockBatch.product_id)
        .all()
    )
    return {product_id: int(total) for product_id, total in rows}


def _with_stock(products: list[Product]) -> list[dict]:
    stock_map = stock_by_product([p.id for p in products])
    items = []
    for p in products:
        row = p.to_dict()
        row["stock"] = stock_map.get(p.id, 0)
        items.append(row)
    return items


def list_products(page: int | None = None, limit: int | None = None) -> dict:
    """
    Active products by name, each with aggregated stock.

    Args:
        page: Page number (1-indexed). If None, returns all items.
        limit: Items per page (default 40, max 200)
    """
    base_query = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
    )

    if page is None:
        products = base_query.all()
        return {"items": _with_stock(products), "count": len(products)}

    limit = min(limit or 40, 200)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1

    products = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": _with_stock(products),
        "count": len(products),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": total_pages,
            "hasMore": page < total_pages,
        },
    }


def search_products(q: str, limit: int = 50) -> dict:
    """Case-insensitive substring match on name, generic name, brand and category."""
    term = (q or "").strip()
    if not term:
        return {"items": [], "count": 0}

    pattern = f"%{term.lower()}%"
    products = (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(Product.generic_name).like(pattern),
                func.lower(Product.brand).like(pattern),
                func.lower(Product.category).like(pattern),
            ),
        )
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(min(max(limit, 1), 200))
        .all()
    )
    return {"items": _with_stock(products), "count": len(products)}


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"productId": product_id})
    return product


def get_product(product_id: int) -> dict:
    return _with_stock([_get_product(product_id)])[0]


def create_product(*, patch: dict) -> dict:
    """Create product using a validated patch dict."""
    product = Product()
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.commit()
    logger.info("Created product %s (%s)", product.id, product.name)
    return product.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    product = _get_product(product_id)
    apply_product_patch(product, patch)
    db.session.commit()
    return product.to_dict()


def delete_product(*, product_id: int) -> dict:
    product = _get_product(product_id)
    product.is_active = False
    db.session.commit()
    logger.info("Deactivated product %s", product_id)
    return product.to_dict()
