# Overview: Flask API routes for sales and transaction queries; parses input and returns JSON responses.

"""
Sales API Routes

DESIGN:
- POST /api/sales creates the sale, its lines and the stock decrements in
  one unit of work (all-or-nothing)
- GET /api/transactions/<id> always reports paid/due/status from the
  payment ledger, never from the cached columns
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import InsufficientStock, TillbookError, error_response
from ..money import cents_to_amount
from ..schemas import SaleRequest
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")
transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@sales_bp.post("")
@require_actor
def create_sale_route():
    """
    Create a sale/order.

    Request body:
    {
        "items": [
            {"product_id": 1, "quantity": 2},
            {"name": "Room service fee", "quantity": 1, "unit_price": "5.00"}
        ],
        "guest_id": 7,            (optional)
        "customer_name": "...",   (optional)
        "location": "Room 12",    (optional, room/table label)
        "discount": "0.00",       (optional)
        "tax": "1.25",            (optional)
        "notes": "..."            (optional)
    }

    Returns:
        201: {"transaction_id", "total", "payment_status", ...}
        400: Empty or malformed sale
        404: Unknown product or guest
        409: Insufficient stock (details.items lists every short product)
    """
    try:
        req = SaleRequest.from_json(request.get_json(silent=True))
        transaction = sales_service.create_sale(
            req.items,
            guest_id=req.guest_id,
            customer_name=req.customer_name,
            location=req.location,
            discount_cents=req.discount_cents,
            tax_cents=req.tax_cents,
            notes=req.notes,
            actor=g.actor,
        )
        return jsonify({
            "transaction_id": transaction.id,
            "subtotal_cents": transaction.subtotal_cents,
            "total_cents": transaction.total_cents,
            "total": cents_to_amount(transaction.total_cents),
            "payment_status": transaction.payment_status,
            "transaction": transaction.to_dict(),
        }), 201
    except InsufficientStock as e:
        current_app.logger.info("Sale rejected: %s", e.message)
        return error_response(e)
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>")
@require_actor
def get_transaction_route(transaction_id: int):
    try:
        return jsonify(sales_service.get_transaction_details(transaction_id)), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
@require_actor
def list_transactions_route():
    """
    Sales history, newest first.

    Query params:
    - kind: sale | return
    - payment_status: unpaid | partial | paid
    - guest_id: int
    - limit (default 100, max 500), offset
    """
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))
    offset = max(request.args.get("offset", default=0, type=int), 0)
    try:
        rows = sales_service.list_transactions(
            kind=request.args.get("kind"),
            guest_id=request.args.get("guest_id", type=int),
            payment_status=request.args.get("payment_status"),
            limit=limit,
            offset=offset,
        )
        return jsonify({"items": [t.to_dict() for t in rows], "limit": limit, "offset": offset}), 200
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500
