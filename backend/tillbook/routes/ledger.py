# Overview: Flask API routes for ledger operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from tillbook.time_utils import parse_iso_datetime
from ..decorators import require_actor
from ..services.ledger_service import list_ledger_events

"""
Time semantics:
- Events are returned newest first by (occurred_at, id).
- cursor is "<ISO-8601 occurred_at>|<id>" taken from next_cursor; paging is
  exclusive of the cursor event.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_actor
def list_ledger_events_route():
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    cursor_raw = request.args.get("cursor")
    before = None
    if cursor_raw:
        try:
            cursor_parts = cursor_raw.split("|")
            before = (parse_iso_datetime(cursor_parts[0]), int(cursor_parts[1]))
        except (ValueError, IndexError):
            return jsonify({"error": "cursor must be in format <ISO-8601>|<id>", "code": "invalid_argument", "details": {}}), 400

    try:
        rows = list_ledger_events(
            category=request.args.get("category"),
            event_type=request.args.get("event_type"),
            entity_type=request.args.get("entity_type"),
            entity_id=request.args.get("entity_id", type=int),
            before=before,
            limit=limit,
        )
    except Exception:
        current_app.logger.exception("Failed to list ledger events")
        return jsonify({"error": "Internal server error"}), 500

    next_cursor = None
    if len(rows) == limit:
        last = rows[-1]
        # Full precision so events sharing a second are not skipped
        next_cursor = f"{last.occurred_at.isoformat()}|{last.id}"

    return jsonify({
        "items": [r.to_dict() for r in rows],
        "next_cursor": next_cursor,
        "limit": limit,
    }), 200
