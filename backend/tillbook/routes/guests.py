# Overview: Flask API routes for rooms, guests and checkout; parses input and returns JSON responses.

"""
Rooms & Guests API Routes

DESIGN:
- Check-in creates an active occupancy and marks the room occupied
- POST /bill previews the final bill without changing state
- POST /checkout freezes the bill and frees the room; it records no payment
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import TillbookError, error_response
from ..schemas import CheckInRequest, CheckoutRequest, RoomRequest
from ..services import checkout_service


rooms_bp = Blueprint("rooms", __name__, url_prefix="/api/rooms")
guests_bp = Blueprint("guests", __name__, url_prefix="/api/guests")


# =============================================================================
# ROOMS
# =============================================================================

@rooms_bp.post("")
@require_actor
def create_room_route():
    try:
        req = RoomRequest.from_json(request.get_json(silent=True))
        room = checkout_service.create_room(req.number, room_type=req.room_type, actor=g.actor)
        return jsonify({"room": room.to_dict()}), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create room")
        return jsonify({"error": "Internal server error"}), 500


@rooms_bp.get("")
@require_actor
def list_rooms_route():
    try:
        rooms = checkout_service.list_rooms(status=request.args.get("status"))
        return jsonify({"items": [r.to_dict() for r in rooms]}), 200
    except Exception:
        current_app.logger.exception("Failed to list rooms")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# GUESTS
# =============================================================================

@guests_bp.post("")
@require_actor
def check_in_route():
    """
    Check a guest in.

    Request body:
    {
        "name": "A. Guest",
        "check_in": "2025-08-16",
        "daily_rate": "150.00",
        "room_id": 3,        (optional)
        "phone": "..."       (optional)
    }
    """
    try:
        req = CheckInRequest.from_json(request.get_json(silent=True))
        guest = checkout_service.check_in_guest(
            name=req.name,
            check_in=req.check_in,
            daily_rate_cents=req.daily_rate_cents,
            room_id=req.room_id,
            phone=req.phone,
            actor=g.actor,
        )
        return jsonify({"guest": guest.to_dict()}), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check in guest")
        return jsonify({"error": "Internal server error"}), 500


@guests_bp.get("")
@require_actor
def list_guests_route():
    try:
        guests = checkout_service.list_guests(status=request.args.get("status"))
        return jsonify({"items": [guest.to_dict() for guest in guests]}), 200
    except Exception:
        current_app.logger.exception("Failed to list guests")
        return jsonify({"error": "Internal server error"}), 500


@guests_bp.get("/<int:guest_id>")
@require_actor
def get_guest_route(guest_id: int):
    try:
        guest = checkout_service.get_guest(guest_id)
        return jsonify({"guest": guest.to_dict()}), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get guest")
        return jsonify({"error": "Internal server error"}), 500


@guests_bp.post("/<int:guest_id>/bill")
@require_actor
def bill_preview_route(guest_id: int):
    """Same body as checkout; returns the bill without checking out."""
    try:
        req = CheckoutRequest.from_json(request.get_json(silent=True))
        bill = checkout_service.compute_bill(
            guest_id,
            req.checkout_date,
            discount_type=req.discount_type,
            discount_amount=req.discount_amount,
        )
        return jsonify({"bill": bill}), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute bill")
        return jsonify({"error": "Internal server error"}), 500


@guests_bp.post("/<int:guest_id>/checkout")
@require_actor
def checkout_route(guest_id: int):
    """
    Check a guest out.

    Request body:
    {
        "checkout_date": "2025-08-20",
        "discount_type": "flat" | "percentage",   (optional)
        "discount_amount": "50.00",               (optional)
        "discount_description": "Loyalty"         (optional)
    }

    Returns:
        200: {"final_bill": 550.0, "bill": {...}}
        404: Unknown guest
        409: Guest already checked out
    """
    try:
        req = CheckoutRequest.from_json(request.get_json(silent=True))
        bill = checkout_service.checkout(
            guest_id,
            req.checkout_date,
            discount_type=req.discount_type,
            discount_amount=req.discount_amount,
            discount_description=req.discount_description,
            actor=g.actor,
        )
        return jsonify({"final_bill": bill["final_bill"], "bill": bill}), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check out guest")
        return jsonify({"error": "Internal server error"}), 500
