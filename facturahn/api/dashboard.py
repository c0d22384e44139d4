"""
API — Dashboard statistics and sales summary.
"""

from datetime import datetime, timedelta

from flask import current_app, jsonify

from facturahn.api import api_bp
from facturahn.api.auth import token_required
from facturahn.extensions import business_now, get_store
from facturahn.models import User
from facturahn.services.company_service import active_cai_status


def _revenue_since(invoices, start: datetime) -> float:
    return sum(i.total for i in invoices if i.date and i.date >= start)


@api_bp.route("/dashboard/stats", methods=["GET"])
@token_required
def dashboard_stats(current_user: User, company):
    """
    Summary statistics for the company's fiscal invoices.

    Proformas are quotes and are left out of every figure.
    """
    now = business_now()
    today = now.date()
    store = get_store()

    invoices = [i for i in store.all_invoices(company.id) if not i.is_proforma]
    active = [i for i in invoices if i.status != "cancelled"]
    paid = [i for i in invoices if i.status == "paid"]
    pending = [i for i in invoices if i.status == "pending"]

    monthly: dict = {}
    for invoice in active:
        if invoice.date:
            key = invoice.date.strftime("%Y-%m")
            monthly[key] = monthly.get(key, 0.0) + invoice.total

    cai = active_cai_status(
        store, company, today=today, warning_days=current_app.config["CAI_WARNING_DAYS"]
    )

    stats = {
        "total_invoices": len(invoices),
        "paid_invoices": len(paid),
        "pending_invoices": len(pending),
        "cancelled_invoices": len(invoices) - len(active),
        "delivered_invoices": sum(1 for i in active if i.delivery_status == "delivered"),
        "total_revenue": sum(i.total for i in paid),
        "pending_amount": sum(i.total for i in pending),
        "tax_collected": sum(i.tax for i in paid),
        "revenue_last_week": _revenue_since(active, now - timedelta(days=7)),
        "revenue_last_month": _revenue_since(active, now - timedelta(days=30)),
        "invoices_today": sum(1 for i in invoices if i.date and i.date.date() == today),
        "monthly_revenue": [
            {"month": month, "total": total} for month, total in sorted(monthly.items())
        ],
        "cai_notice": cai["notice"].as_dict() if cai["notice"] else None,
    }

    return jsonify(stats)
