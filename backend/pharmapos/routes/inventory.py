# backend/pharmapos/routes/inventory.py
"""
Inventory (Product_Item batch) routes.

Bodies use storage names: ProductID, Stock, ExpiryDate (YYYY-MM-DD),
BatchNumber, Location, UserID.

Manual stock edits go through PUT /<id> and may set any Stock >= 0. Sales
never call these routes; they deduct through the transaction recorder.
"""
from flask import Blueprint, current_app, request

from ..models import StockBatch
from ..services import inventory_service
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_stock_batch,
    validate_payload,
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

ADD_STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"ProductID", "Stock", "ExpiryDate", "BatchNumber", "Location", "UserID"},
    required_on_create={"ProductID", "Stock", "UserID"},
)

UPDATE_STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"Stock", "ExpiryDate", "BatchNumber", "Location", "IsActive"},
)


@inventory_bp.get("/items")
def list_items():
    """All batches, newest first, each with its Product."""
    return {"success": True, "items": inventory_service.list_batches()}


@inventory_bp.get("/items/product/<int:product_id>")
def list_items_for_product(product_id: int):
    """Active batches of one product in FIFO order."""
    return {"success": True, "items": inventory_service.list_product_batches(product_id)}


@inventory_bp.get("/stock/<int:product_id>")
def product_stock(product_id: int):
    return {"success": True, **inventory_service.get_product_stock(product_id)}


@inventory_bp.get("/products-with-stock")
def products_with_stock():
    return inventory_service.list_products_with_stock()


@inventory_bp.get("/alerts")
def stock_alerts():
    """
    Query params (default to LOW_STOCK_THRESHOLD / EXPIRY_ALERT_DAYS):
    - threshold: int - low-stock threshold (inclusive)
    - days: int - expiry look-ahead in days
    """
    threshold = request.args.get("threshold", current_app.config["LOW_STOCK_THRESHOLD"], type=int)
    days = request.args.get("days", current_app.config["EXPIRY_ALERT_DAYS"], type=int)

    alerts = inventory_service.stock_alerts(low_stock_threshold=threshold, expiry_days=days)
    return {"success": True, **alerts}


@inventory_bp.post("/add")
def add_stock():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=StockBatch, payload=payload, policy=ADD_STOCK_POLICY, partial=False)
    enforce_rules_stock_batch(patch)

    batch = inventory_service.add_stock(patch=patch)
    return {
        "success": True,
        "message": "Stock added successfully",
        "productItem": batch.to_dict(),
    }, 201


@inventory_bp.put("/<int:batch_id>")
def update_stock(batch_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=StockBatch, payload=payload, policy=UPDATE_STOCK_POLICY, partial=True)
    enforce_rules_stock_batch(patch)

    batch = inventory_service.update_stock(batch_id=batch_id, patch=patch)
    return {
        "success": True,
        "message": "Stock updated successfully",
        "productItem": batch.to_dict(),
    }


@inventory_bp.delete("/<int:batch_id>")
def delete_stock(batch_id: int):
    inventory_service.deactivate_batch(batch_id=batch_id)
    return {"success": True, "message": "Stock item deactivated successfully"}
