# Overview: Flask API routes for customer balances, invoices and payments.

from flask import Blueprint, request, jsonify, g, current_app

from ..models import Customer
from ..extensions import db
from ..services import balance_service, invoice_service
from ..services.concurrency import run_with_retry
from ..validation import SaleError, parse_int, parse_payment_payload
from ..decorators import require_auth


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/<int:customer_id>/balance")
@require_auth
def balance_route(customer_id: int):
    """Customer debts plus balance history, newest first."""
    try:
        limit = parse_int(request.args.get("limit", 100), "limit", minimum=1)
        history = balance_service.balance_history(customer_id, limit=min(limit, 500))
        customer = db.session.get(Customer, customer_id)
        return jsonify({
            "customer": customer.to_dict(),
            "history": [entry.to_dict() for entry in history],
        }), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@customers_bp.get("/<int:customer_id>/invoices")
@require_auth
def list_customer_invoices_route(customer_id: int):
    try:
        limit = parse_int(request.args.get("limit", 100), "limit", minimum=1)
        invoices = invoice_service.list_customer_invoices(customer_id, limit=min(limit, 500))
        return jsonify({"invoices": [i.to_dict(include_items=False) for i in invoices]}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@customers_bp.get("/<int:customer_id>/payments")
@require_auth
def list_payments_route(customer_id: int):
    try:
        limit = parse_int(request.args.get("limit", 100), "limit", minimum=1)
        payments = balance_service.list_payments(customer_id, limit=min(limit, 500))
        return jsonify({"payments": [entry.to_dict() for entry in payments]}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@customers_bp.post("/<int:customer_id>/payments")
@require_auth
def record_payment_route(customer_id: int):
    """
    Record a payment against customer debt.

    Body: amountIqd, amountUsd, paymentMethod, description.
    """
    try:
        data = parse_payment_payload(request.get_json(silent=True))

        def _record():
            entries = balance_service.record_payment(
                customer_id=customer_id,
                user_id=g.current_user.id,
                **data,
            )
            db.session.commit()
            return entries

        entries = run_with_retry(_record)
        customer = db.session.get(Customer, customer_id)
        return jsonify({
            "success": True,
            "customer": customer.to_dict(),
            "entries": [entry.to_dict() for entry in entries],
        }), 201

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment for customer %s", customer_id)
        return jsonify({"error": "Internal server error"}), 500
