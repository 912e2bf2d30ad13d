# Overview: Flask API routes for catalog and stock operations; parses input and returns JSON responses.

"""
Catalog & Stock Ledger API Routes

DESIGN:
- Products are created with optional stock tracking and opening stock
- Stock only changes through the adjustment ledger (set / add / remove,
  plus supplier purchases)
- History and low-stock views are read-only
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import InsufficientStock, TillbookError, error_response
from ..schemas import ProductRequest, PurchaseRequest, StockAdjustRequest
from ..services import catalog_service, stock_service


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/products")


@catalog_bp.post("")
@require_actor
def create_product_route():
    """
    Create a catalog item.

    Request body:
    {
        "name": "Club Sandwich",
        "price": "12.50",
        "category": "Food",            (optional)
        "cost": "4.10",                (optional)
        "sku": "FOOD-001",             (optional, unique)
        "track_stock": true,           (optional, default false)
        "stock_quantity": 40,          (optional, opening stock)
        "low_stock_threshold": 10      (optional)
    }
    """
    try:
        req = ProductRequest.from_json(request.get_json(silent=True))
        product = catalog_service.create_product(
            name=req.name,
            price_cents=req.price_cents,
            category=req.category,
            cost_cents=req.cost_cents,
            sku=req.sku,
            track_stock=req.track_stock,
            stock_quantity=req.stock_quantity,
            low_stock_threshold=req.low_stock_threshold,
            actor=g.actor,
        )
        return jsonify({"product": product.to_dict()}), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("")
@require_actor
def list_products_route():
    category = request.args.get("category")
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    try:
        products = catalog_service.list_products(category=category, include_inactive=include_inactive)
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/low-stock")
@require_actor
def low_stock_route():
    """Tracked products at or below their reorder threshold (LOW / CRITICAL)."""
    limit = request.args.get("limit", type=int)
    try:
        items = catalog_service.list_low_stock(limit=limit)
        return jsonify({"items": items, "count": len(items)}), 200
    except Exception:
        current_app.logger.exception("Failed to list low stock")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/<int:product_id>")
@require_actor
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        data = product.to_dict()
        data["stock_level"] = catalog_service.stock_level(product)
        return jsonify({"product": data}), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/<int:product_id>/stock")
@require_actor
def adjust_stock_route(product_id: int):
    """
    Manual stock adjustment.

    Request body:
    {
        "mode": "set" | "add" | "remove",
        "quantity": 10,
        "reason": "Weekly count"   (optional)
    }

    Returns:
        200: {"product_id": 1, "new_quantity": 75}
        400: Invalid mode or quantity
        404: Unknown product
        409: Remove beyond available stock
    """
    try:
        req = StockAdjustRequest.from_json(request.get_json(silent=True))
        new_quantity = stock_service.adjust_stock(
            product_id,
            req.quantity,
            req.mode,
            reason=req.reason,
            actor=g.actor,
        )
        return jsonify({"product_id": product_id, "new_quantity": new_quantity}), 200
    except InsufficientStock as e:
        current_app.logger.info("Stock adjustment rejected for product %s: %s", product_id, e.message)
        return error_response(e)
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/<int:product_id>/purchases")
@require_actor
def record_purchase_route(product_id: int):
    """
    Receive a supplier purchase into stock.

    Request body:
    {
        "quantity": 24,
        "supplier": "Harbour Beverages",   (optional)
        "unit_cost": "0.90"                (optional, becomes the product cost)
    }
    """
    try:
        req = PurchaseRequest.from_json(request.get_json(silent=True))
        adjustment = stock_service.record_purchase(
            product_id,
            req.quantity,
            supplier=req.supplier,
            unit_cost_cents=req.unit_cost_cents,
            actor=g.actor,
        )
        return jsonify({
            "product_id": product_id,
            "new_quantity": adjustment.quantity_after,
            "purchase": adjustment.to_dict(),
        }), 201
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/purchases")
@require_actor
def list_purchases_route():
    product_id = request.args.get("product_id", type=int)
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))
    try:
        purchases = stock_service.list_purchases(product_id=product_id, limit=limit)
        return jsonify({"items": [p.to_dict() for p in purchases], "limit": limit}), 200
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/<int:product_id>/stock/history")
@require_actor
def stock_history_route(product_id: int):
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))
    try:
        adjustments = stock_service.get_stock_history(product_id, limit=limit)
        return jsonify({"items": [a.to_dict() for a in adjustments], "limit": limit}), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get stock history")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/<int:product_id>/stock/verify")
@require_actor
def verify_stock_route(product_id: int):
    """Materialized stock_quantity vs the fold of its adjustments."""
    try:
        return jsonify(stock_service.verify_stock_fold(product_id)), 200
    except TillbookError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify stock")
        return jsonify({"error": "Internal server error"}), 500
