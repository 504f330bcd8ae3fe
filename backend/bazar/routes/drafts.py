# Overview: Flask API routes for sales drafts and their finalization.

"""Draft API routes. Mutations are restricted to the draft owner."""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import draft_service
from ..validation import SaleError, parse_finalize_payload
from ..decorators import require_auth


drafts_bp = Blueprint("drafts", __name__, url_prefix="/api/drafts")


@drafts_bp.post("")
@require_auth
def create_draft_route():
    try:
        draft = draft_service.create_draft(request.get_json(silent=True), user_id=g.current_user.id)
        return jsonify({"draft": draft.to_dict()}), 201

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create draft")
        return jsonify({"error": "Internal server error"}), 500


@drafts_bp.get("")
@require_auth
def list_drafts_route():
    try:
        drafts = draft_service.list_user_drafts(g.current_user.id, status=request.args.get("status"))
        return jsonify({"drafts": [d.to_dict(include_items=False) for d in drafts]}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@drafts_bp.get("/<int:draft_id>")
@require_auth
def get_draft_route(draft_id: int):
    try:
        draft = draft_service.get_draft(draft_id)
        return jsonify({"draft": draft.to_dict()}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@drafts_bp.put("/<int:draft_id>")
@require_auth
def update_draft_route(draft_id: int):
    try:
        draft = draft_service.update_draft(draft_id, request.get_json(silent=True), user_id=g.current_user.id)
        return jsonify({"draft": draft.to_dict()}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update draft")
        return jsonify({"error": "Internal server error"}), 500


@drafts_bp.patch("/<int:draft_id>/status")
@require_auth
def update_draft_status_route(draft_id: int):
    try:
        data = request.get_json(silent=True) or {}
        draft = draft_service.update_draft_status(draft_id, data.get("status"), user_id=g.current_user.id)
        return jsonify({"draft": draft.to_dict()}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change draft status")
        return jsonify({"error": "Internal server error"}), 500


@drafts_bp.delete("/<int:draft_id>")
@require_auth
def cancel_draft_route(draft_id: int):
    """Cancel (soft delete) a draft. Finalized drafts cannot be cancelled."""
    try:
        draft = draft_service.cancel_draft(draft_id, user_id=g.current_user.id)
        return jsonify({"draft": draft.to_dict(include_items=False)}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel draft")
        return jsonify({"error": "Internal server error"}), 500


@drafts_bp.post("/<int:draft_id>/finalize")
@require_auth
def finalize_draft_route(draft_id: int):
    """
    Finalize a draft into a sale and invoice.

    Body (all optional): paymentMethod, amountPaid, invoiceNumber,
    currency ("IQD" | "USD"), notes.
    """
    try:
        options = parse_finalize_payload(request.get_json(silent=True))
        result = draft_service.finalize(draft_id, user_id=g.current_user.id, **options)
        return jsonify({
            "success": True,
            "saleId": result.sale_id,
            "invoiceId": result.invoice_id,
            "invoiceNumber": result.invoice_number,
        }), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to finalize draft %s", draft_id)
        return jsonify({"error": "Internal server error"}), 500
