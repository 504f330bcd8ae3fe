# Overview: Flask API routes for manual stock adjustments and movement history.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import stock_service
from ..services.concurrency import run_with_retry
from ..validation import SaleError, ValidationError, parse_int, parse_optional_str, require_object
from ..decorators import require_auth


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjust")
@require_auth
def adjust_stock_route():
    """
    Restock or correct stock.

    Body: entity_type (PRODUCT | MOTORCYCLE), entity_id, quantity_delta, reason.
    """
    try:
        data = require_object(request.get_json(silent=True))
        entity_type = str(data.get("entity_type") or "").strip().upper()
        if not entity_type:
            raise ValidationError("entity_type is required")
        entity_id = parse_int(data.get("entity_id"), "entity_id", minimum=1)
        quantity_delta = parse_int(data.get("quantity_delta"), "quantity_delta")
        reason = parse_optional_str(data.get("reason"), "reason")

        def _adjust():
            new_stock = stock_service.adjust_stock(
                entity_type=entity_type,
                entity_id=entity_id,
                quantity_delta=quantity_delta,
                user_id=g.current_user.id,
                reason=reason,
            )
            db.session.commit()
            return new_stock

        new_stock = run_with_retry(_adjust)
        return jsonify({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "stock_quantity": new_stock,
        }), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/products/<int:product_id>/movements")
@require_auth
def list_movements_route(product_id: int):
    try:
        movements = stock_service.list_stock_movements(product_id)
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
