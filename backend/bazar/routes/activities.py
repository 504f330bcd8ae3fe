# Overview: Flask API routes for the product/motorcycle activity trail.

from flask import Blueprint, request, jsonify

from ..services import activity_service
from ..validation import SaleError, ValidationError, parse_int, parse_optional_int
from ..decorators import require_auth


activities_bp = Blueprint("activities", __name__, url_prefix="/api/activities")


@activities_bp.get("")
@require_auth
def list_activities_route():
    """Query: entity_type (PRODUCT | MOTORCYCLE), entity_id, invoice_id, limit."""
    try:
        entity_type = request.args.get("entity_type")
        if entity_type:
            entity_type = entity_type.strip().upper()
            if entity_type not in activity_service.ENTITY_TYPES:
                raise ValidationError("entity_type must be PRODUCT or MOTORCYCLE")
        limit = parse_int(request.args.get("limit", 100), "limit", minimum=1)

        activities = activity_service.list_activities(
            entity_type=entity_type,
            entity_id=parse_optional_int(request.args.get("entity_id"), "entity_id"),
            invoice_id=parse_optional_int(request.args.get("invoice_id"), "invoice_id"),
            limit=min(limit, 500),
        )
        return jsonify({"activities": [a.to_dict() for a in activities]}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
