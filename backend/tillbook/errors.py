# Overview: Domain error hierarchy and its JSON error responses.

"""
Tillbook error hierarchy.

Every service raises one of these. Each carries a stable ``code`` for API
clients, an HTTP status for the route layer, and an optional ``details``
dict (e.g. the offending product ids for InsufficientStock).

Any error raised inside a unit of work aborts the whole unit; nothing is
committed and nothing is retried.
"""

from __future__ import annotations

from flask import jsonify


class TillbookError(Exception):
    """Base class for structured domain errors."""

    code = "error"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class InvalidArgument(TillbookError):
    """Malformed or out-of-range input (400)."""

    code = "invalid_argument"


class EmptyTransaction(TillbookError):
    """A sale or return without line items (400)."""

    code = "empty_transaction"


class NotFound(TillbookError):
    """Unknown product, transaction, guest, room or shift (404)."""

    code = "not_found"
    http_status = 404


class InsufficientStock(TillbookError):
    """Would drive a tracked product's stock negative (409)."""

    code = "insufficient_stock"
    http_status = 409


class AlreadyCheckedOut(TillbookError):
    code = "already_checked_out"
    http_status = 409


class ShiftAlreadyOpen(TillbookError):
    code = "shift_already_open"
    http_status = 409


class PersistenceFailure(TillbookError):
    """Underlying storage error, surfaced as a generic failure (500)."""

    code = "persistence_failure"
    http_status = 500


def error_response(exc: TillbookError):
    return jsonify(exc.to_dict()), exc.http_status
