# Overview: Flask API routes for invoices.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import invoice_service
from ..validation import SaleError, parse_int, parse_optional_int, parse_optional_str
from ..decorators import require_auth


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    Invoices, newest first.

    Query: status, customer_id, search (invoice number or notes), limit.
    """
    try:
        limit = parse_int(request.args.get("limit", 100), "limit", minimum=1)
        invoices = invoice_service.list_invoices(
            status=request.args.get("status"),
            customer_id=parse_optional_int(request.args.get("customer_id"), "customer_id"),
            search=request.args.get("search"),
            limit=min(limit, 500),
        )
        return jsonify({"invoices": [i.to_dict(include_items=False) for i in invoices]}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"invoice": invoice.to_dict()}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@invoices_bp.put("/<int:invoice_id>")
@require_auth
def update_invoice_route(invoice_id: int):
    """
    Replace an invoice's items and amounts.

    Body: items, customer_id, discount, amount_paid, notes.
    """
    try:
        invoice = invoice_service.update_invoice(
            invoice_id, request.get_json(silent=True), user_id=g.current_user.id,
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/cancel")
@require_auth
def cancel_invoice_route(invoice_id: int):
    try:
        data = request.get_json(silent=True) or {}
        reason = parse_optional_str(data.get("reason"), "reason", max_length=100)
        invoice = invoice_service.cancel_invoice(invoice_id, user_id=g.current_user.id, reason=reason)
        return jsonify({"invoice": invoice.to_dict()}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500
