# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import TillbookError, error_response
from ..schemas import PaymentRequest
from ..services import payment_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@require_actor
def add_payment_route():
    """
    Apply a payment to a sale.

    Request body:
    {
        "transaction_id": 123,
        "amount": "400.00",
        "method": "cash",
        "reference": "AUTH-12345"  (optional)
    }

    Returns:
        201: {"payment_id", "payment_status", "amount_due", "payment", "summary"}
        400: Invalid amount/method, or the transaction is a return
        404: Unknown transaction
    """
    try:
        req = PaymentRequest.from_json(request.get_json(silent=True))
        payment = payment_service.add_payment(
            req.transaction_id,
            req.amount_cents,
            req.method,
            reference=req.reference,
            actor=g.actor,
        )
        summary = payment_service.get_payment_summary(req.transaction_id)
        return jsonify({
            "payment_id": payment.id,
            "payment_status": summary["payment_status"],
            "amount_due": summary["amount_due"],
            "amount_due_cents": summary["amount_due_cents"],
            "payment": payment.to_dict(),
            "summary": summary,
        }), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/transactions/<int:transaction_id>/verify")
@require_actor
def verify_payment_status_route(transaction_id: int):
    """Cached payment status vs the payment ledger fold."""
    try:
        return jsonify(payment_service.verify_payment_status(transaction_id)), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify payment status")
        return jsonify({"error": "Internal server error"}), 500
