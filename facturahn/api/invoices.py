"""
API — Invoice CRUD, numbering, status and delivery.
"""

from flask import current_app, jsonify, request

from facturahn.api import api_bp
from facturahn.api.auth import token_required
from facturahn.api.schemas import serialize_invoice
from facturahn.extensions import business_now, get_store
from facturahn.models import User
from facturahn.services import invoice_service
from facturahn.services.inventory import INVOICE_STATUSES
from facturahn.utils.helpers import parse_date


def _get_invoice(company, invoice_id):
    return get_store().get_invoice(company.id, invoice_id)


# --------------------------------------------------------------------------
# List / search invoices
# --------------------------------------------------------------------------
@api_bp.route("/invoices", methods=["GET"])
@token_required
def list_invoices(current_user: User, company):
    """
    Optional query params: q, start_date, end_date (YYYY-MM-DD),
    status (repeatable), page, per_page.
    """
    try:
        start_date = parse_date(request.args.get("start_date"))
        end_date = parse_date(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "Las fechas deben tener el formato YYYY-MM-DD"}), 400

    statuses = [s for s in request.args.getlist("status") if s in INVOICE_STATUSES]

    try:
        page = max(int(request.args.get("page", 1)), 1)
        per_page = int(request.args.get("per_page", current_app.config["INVOICES_PER_PAGE"]))
        per_page = min(max(per_page, 1), current_app.config["MAX_INVOICES_PER_PAGE"])
    except ValueError:
        return jsonify({"error": "page y per_page deben ser números enteros"}), 400

    query = get_store().search_invoices(
        company.id,
        search=(request.args.get("q") or "").strip() or None,
        start_date=start_date,
        end_date=end_date,
        statuses=statuses,
    )
    total = query.count()
    items = list(query.skip((page - 1) * per_page).limit(per_page))
    pages = max(1, (total + per_page - 1) // per_page)

    return jsonify({
        "invoices": [serialize_invoice(i) for i in items],
        "total": total,
        "page": page,
        "pages": pages,
    })


# --------------------------------------------------------------------------
# Suggested next number
# --------------------------------------------------------------------------
@api_bp.route("/invoices/next-number", methods=["GET"])
@token_required
def next_number(current_user: User, company):
    suggestion = invoice_service.suggest_next_number(get_store(), company)
    authorization = suggestion.authorization
    return jsonify({
        "previous": suggestion.previous,
        "next": suggestion.next_number,
        "last_invoice_exists": suggestion.last_invoice_exists,
        "range_start": authorization.range_start if authorization else None,
        "range_end": authorization.range_end if authorization else None,
        "limit_date": authorization.expiration_date.isoformat() if authorization else None,
    })


# --------------------------------------------------------------------------
# Get single invoice
# --------------------------------------------------------------------------
@api_bp.route("/invoices/<invoice_id>", methods=["GET"])
@token_required
def get_invoice(current_user: User, company, invoice_id):
    invoice = _get_invoice(company, invoice_id)
    if not invoice:
        return jsonify({"error": "Factura no encontrada"}), 404
    return jsonify(serialize_invoice(invoice, include_items=True))


# --------------------------------------------------------------------------
# Create invoice
# --------------------------------------------------------------------------
@api_bp.route("/invoices", methods=["POST"])
@token_required
def create_invoice(current_user: User, company):
    """
    JSON body:
    {
      "customer_id": "...",
      "invoice_number": "000-001-01-00000001",   (optional, fiscal only)
      "date": "2026-03-01",
      "is_proforma": false,
      "is_exempt": false,
      "delivered": false,
      "items": [
        { "product_id": "...", "description": "...", "quantity": 1,
          "unit_cost": 100.0, "discount": 0 }
      ]
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("items", []), list):
        return jsonify({"error": "items debe ser una lista"}), 400

    invoice = invoice_service.create_invoice(
        get_store(), company, data, user=current_user, now=business_now()
    )
    return jsonify(serialize_invoice(invoice, include_items=True)), 201


# --------------------------------------------------------------------------
# Update invoice
# --------------------------------------------------------------------------
@api_bp.route("/invoices/<invoice_id>", methods=["PUT", "PATCH"])
@token_required
def update_invoice(current_user: User, company, invoice_id):
    invoice = _get_invoice(company, invoice_id)
    if not invoice:
        return jsonify({"error": "Factura no encontrada"}), 404

    data = request.get_json(silent=True) or {}
    if "items" in data and not isinstance(data["items"], list):
        return jsonify({"error": "items debe ser una lista"}), 400

    invoice_service.update_invoice(get_store(), invoice, data, now=business_now())
    return jsonify(serialize_invoice(invoice, include_items=True))


# --------------------------------------------------------------------------
# Delete proforma
# --------------------------------------------------------------------------
@api_bp.route("/invoices/<invoice_id>", methods=["DELETE"])
@token_required
def delete_invoice(current_user: User, company, invoice_id):
    invoice = _get_invoice(company, invoice_id)
    if not invoice:
        return jsonify({"error": "Factura no encontrada"}), 404

    invoice_service.delete_invoice(get_store(), invoice)
    return jsonify({"message": "Factura eliminada"}), 200


# --------------------------------------------------------------------------
# Bulk status change
# --------------------------------------------------------------------------
@api_bp.route("/invoices/status", methods=["POST"])
@token_required
def update_status(current_user: User, company):
    """JSON body: { "invoice_ids": ["..."], "status": "paid" }"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("invoice_ids"), list):
        return jsonify({"error": "invoice_ids debe ser una lista"}), 400

    invoices = invoice_service.change_status(
        get_store(), company, data["invoice_ids"], data.get("status")
    )
    return jsonify({"invoices": [serialize_invoice(i) for i in invoices]})


# --------------------------------------------------------------------------
# Deliver goods → update inventory
# --------------------------------------------------------------------------
@api_bp.route("/invoices/<invoice_id>/deliver", methods=["POST"])
@token_required
def deliver_invoice(current_user: User, company, invoice_id):
    invoice = _get_invoice(company, invoice_id)
    if not invoice:
        return jsonify({"error": "Factura no encontrada"}), 404

    invoice_service.deliver_invoice(get_store(), invoice)
    return jsonify(serialize_invoice(invoice, include_items=True))
