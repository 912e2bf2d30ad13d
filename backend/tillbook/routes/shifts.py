# Overview: Flask API routes for shifts and expenses; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import InvalidArgument, TillbookError, error_response
from ..schemas import ExpenseRequest, ShiftCloseRequest, ShiftOpenRequest
from ..services import shift_service
from ..time_utils import parse_business_date


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")
expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


# =============================================================================
# SHIFTS
# =============================================================================

@shifts_bp.post("")
@require_actor
def open_shift_route():
    """
    Open a shift.

    Request body: {"start_cash": "100.00"}

    Returns:
        201: Shift opened
        409: Another shift is open (details.shift_id)
    """
    try:
        req = ShiftOpenRequest.from_json(request.get_json(silent=True))
        shift = shift_service.open_shift(g.actor, req.start_cash_cents)
        return jsonify({"shift_id": shift.id, "shift": shift.to_dict()}), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/<int:shift_id>/close")
@require_actor
def close_shift_route(shift_id: int):
    """
    Close a shift and reconcile the drawer.

    Request body: {"end_cash_actual": "148.50", "notes": "..."}

    Returns:
        200: {"shift_id", "difference", "shift"}
    """
    try:
        req = ShiftCloseRequest.from_json(request.get_json(silent=True))
        shift = shift_service.close_shift(shift_id, g.actor, req.end_cash_actual_cents, notes=req.notes)
        data = shift.to_dict()
        return jsonify({"shift_id": shift.id, "difference": data["difference"], "shift": data}), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("/current")
@require_actor
def current_shift_route():
    try:
        shift = shift_service.get_current_shift()
        return jsonify({"shift": shift.to_dict() if shift else None}), 200
    except Exception:
        current_app.logger.exception("Failed to get current shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("")
@require_actor
def shift_history_route():
    limit = request.args.get("limit", default=50, type=int)
    limit = max(1, min(limit, 500))
    try:
        shifts = shift_service.get_shift_history(limit=limit)
        return jsonify({"items": [s.to_dict() for s in shifts], "limit": limit}), 200
    except Exception:
        current_app.logger.exception("Failed to list shifts")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# EXPENSES
# =============================================================================

@expenses_bp.post("")
@require_actor
def record_expense_route():
    """
    Record an expense.

    Request body:
    {
        "date": "2025-08-16",
        "category": "Supplies",
        "amount": "1.50",
        "description": "...",   (optional)
        "method": "cash"        (optional, default cash)
    }
    """
    try:
        req = ExpenseRequest.from_json(request.get_json(silent=True))
        expense = shift_service.record_expense(
            expense_date=req.expense_date,
            category=req.category,
            amount_cents=req.amount_cents,
            description=req.description,
            method=req.method,
            actor=g.actor,
        )
        return jsonify({"expense": expense.to_dict()}), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("")
@require_actor
def list_expenses_route():
    """Query params: date_from, date_to (YYYY-MM-DD), category."""
    try:
        try:
            date_from = parse_business_date(request.args.get("date_from"))
            date_to = parse_business_date(request.args.get("date_to"))
        except ValueError:
            raise InvalidArgument("date_from and date_to must be YYYY-MM-DD dates")

        expenses = shift_service.list_expenses(
            date_from=date_from,
            date_to=date_to,
            category=request.args.get("category"),
        )
        return jsonify({
            "items": [e.to_dict() for e in expenses],
            "total_cents": sum(e.amount_cents for e in expenses),
        }), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return jsonify({"error": "Internal server error"}), 500
