"""
API — Sales, customer and inventory reports.

Date filters are ``start_date`` and ``end_date`` (YYYY-MM-DD, inclusive).
"""

from flask import current_app, jsonify, request

from facturahn.api import api_bp
from facturahn.api.auth import token_required
from facturahn.api.schemas import (
    serialize_customer,
    serialize_customer_sales,
    serialize_invoice,
    serialize_product_sales,
    serialize_stock_level,
)
from facturahn.errors import ServiceError
from facturahn.extensions import get_store
from facturahn.models import User
from facturahn.services import report_service


def _period():
    return report_service.parse_period(
        request.args.get("start_date"), request.args.get("end_date")
    )


def _limit() -> int:
    try:
        limit = int(request.args.get("limit", current_app.config["REPORT_DEFAULT_LIMIT"]))
    except ValueError:
        raise ServiceError("limit debe ser un número entero") from None
    return min(max(limit, 1), current_app.config["REPORT_MAX_LIMIT"])


def _invoice_report(period, report: dict, **extra) -> dict:
    return dict(
        extra,
        period=period.as_dict(),
        invoices=[serialize_invoice(i) for i in report["invoices"]],
        summary=report["summary"],
    )


# --------------------------------------------------------------------------
# Invoices
# --------------------------------------------------------------------------
@api_bp.route("/reports/sales", methods=["GET"])
@token_required
def sales_report(current_user: User, company):
    """Fiscal invoices of a period. Optional: status (repeatable)."""
    period = _period()
    report = report_service.sales_by_period(
        get_store(), company, period, statuses=request.args.getlist("status")
    )
    return jsonify(_invoice_report(period, report))


@api_bp.route("/reports/customers/<customer_id>/invoices", methods=["GET"])
@token_required
def customer_invoices_report(current_user: User, company, customer_id):
    period = _period()
    report = report_service.invoices_by_customer(get_store(), company, customer_id, period)
    return jsonify(_invoice_report(period, report, customer=serialize_customer(report["customer"])))


@api_bp.route("/reports/invoice-status", methods=["GET"])
@token_required
def invoice_status_report(current_user: User, company):
    period = _period()
    report = report_service.invoice_status(get_store(), company, period)
    return jsonify(dict(report, period=period.as_dict()))


# --------------------------------------------------------------------------
# Customers
# --------------------------------------------------------------------------
@api_bp.route("/reports/top-customers", methods=["GET"])
@token_required
def top_customers_report(current_user: User, company):
    period = _period()
    rows = report_service.top_customers(get_store(), company, period, _limit())
    return jsonify({
        "period": period.as_dict(),
        "customers": [serialize_customer_sales(r) for r in rows],
    })


@api_bp.route("/reports/customers/<customer_id>/purchases", methods=["GET"])
@token_required
def purchase_history_report(current_user: User, company, customer_id):
    report = report_service.purchase_history(get_store(), company, customer_id)
    return jsonify({
        "customer": serialize_customer(report["customer"]),
        "invoices": [serialize_invoice(i) for i in report["invoices"]],
        "products": [serialize_product_sales(r) for r in report["products"]],
        "summary": report["summary"],
    })


# --------------------------------------------------------------------------
# Products
# --------------------------------------------------------------------------
@api_bp.route("/reports/best-selling", methods=["GET"])
@token_required
def best_selling_report(current_user: User, company):
    """Optional: include_services=false to rank goods only."""
    period = _period()
    include_services = request.args.get("include_services", "true").lower() != "false"
    rows = report_service.best_selling(
        get_store(), company, period, _limit(), include_services=include_services
    )
    return jsonify({
        "period": period.as_dict(),
        "products": [serialize_product_sales(r) for r in rows],
    })


@api_bp.route("/reports/inventory", methods=["GET"])
@token_required
def inventory_report(current_user: User, company):
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    report = report_service.current_inventory(get_store(), company, threshold)
    return jsonify({
        "threshold": threshold,
        "low_stock_count": len(report["low_stock"]),
        "products": [serialize_stock_level(p, threshold) for p in report["products"]],
    })
