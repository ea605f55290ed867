# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/pharmapos/routes/products.py
"""
Product catalog routes.

Bodies use storage names (Name, GenericName, SellingPrice, ...). Every
listing includes `stock`, the sum of the product's active batches.
DELETE is a soft delete.
"""
from flask import Blueprint, request

from ..models import Product
from ..services import products_service
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "Name",
        "GenericName",
        "Category",
        "Brand",
        "Image",
        "SellingPrice",
        "IsVATExemptYN",
        "PrescriptionYN",
        "SeniorPWDYN",
        "IsActive",
        "UserID",
    },
    required_on_create={"Name", "SellingPrice"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - limit: int (optional) - items per page (default 40, max 200)
    """
    page = request.args.get("page", type=int)
    limit = request.args.get("limit", type=int)

    result = products_service.list_products(page=page, limit=limit)
    return {"success": True, **result}


@products_bp.get("/search")
def search_products():
    q = request.args.get("q", "")
    limit = request.args.get("limit", 50, type=int)
    return {"success": True, **products_service.search_products(q, limit=limit)}


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    return {"success": True, "product": products_service.get_product(product_id)}


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = products_service.create_product(patch=patch)
    return {"success": True, "message": "Product created successfully", "product": created}, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    updated = products_service.update_product(product_id=product_id, patch=patch)
    return {"success": True, "message": "Product updated successfully", "product": updated}


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    products_service.delete_product(product_id=product_id)
    return {"success": True, "message": "Product deleted successfully"}
