# Overview: Flask API routes for sales transactions; parses input and returns JSON responses.

# backend/pharmapos/routes/transactions.py
"""
Sale transaction routes.

POST creates a sale atomically (header + lines + FIFO stock deduction).
Request and response envelopes are camelCase; stored rows are serialized
with their storage names.
"""
from flask import Blueprint, request

from ..services import transaction_service
from ..services.transaction_service import SaleRequest

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
def create_transaction():
    """
    Body:
    {referenceNo, paymentMethod, subtotal, isSeniorPWDActive, seniorPWDID,
     cashReceived, change, userId, items: [{productId, quantity, unitPrice}]}
    """
    sale = SaleRequest.from_payload(request.get_json(silent=True))
    receipt = transaction_service.record_sale(sale)
    return receipt.to_dict(), 201


@transactions_bp.get("")
def list_transactions():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 50, type=int)
    return transaction_service.list_transactions(page=page, limit=limit)


@transactions_bp.get("/<int:transaction_id>")
def get_transaction(transaction_id: int):
    return {"success": True, "data": transaction_service.get_transaction(transaction_id)}


@transactions_bp.delete("/<int:transaction_id>")
def delete_transaction(transaction_id: int):
    transaction_service.delete_transaction(transaction_id)
    return {"success": True, "message": "Transaction deleted successfully"}
