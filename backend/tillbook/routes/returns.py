# Overview: Flask API routes for returns operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import TillbookError, error_response
from ..schemas import ReturnRequest
from ..services import return_service


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_actor
def create_return_route():
    """
    Record a return.

    Request body:
    {
        "original_sale_id": 42,      (optional; omit for a standalone credit)
        "items": [{"product_id": 1, "quantity": 1}],
        "reason": "Damaged",         (optional)
        "restore_stock": true,       (optional, default false)
        "refund_method": "cash",     (optional)
        "refund_amount": "9.50"      (optional, defaults to the return total)
    }

    Returns:
        201: {"return_id", "total", "refund_amount", "return"}
    """
    try:
        req = ReturnRequest.from_json(request.get_json(silent=True))
        transaction = return_service.create_return(
            req.items,
            original_sale_id=req.original_sale_id,
            reason=req.reason,
            restore_stock=req.restore_stock,
            refund_method=req.refund_method,
            refund_amount_cents=req.refund_amount_cents,
            actor=g.actor,
        )
        data = transaction.to_dict()
        return jsonify({
            "return_id": transaction.id,
            "total": data["total"],
            "refund_amount": data["refund_amount"],
            "return": data,
        }), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500
