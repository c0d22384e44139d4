"""
Sales and inventory reports.

Only fiscal invoices count as sales. Cancelled invoices are listed where a
report lists invoices, but never add to totals.
"""

import logging
from datetime import date
from typing import NamedTuple, Optional

from facturahn.errors import NotFoundError, ServiceError
from facturahn.services.inventory import DELIVERY_DELIVERED, INVOICE_STATUSES, STATUS_CANCELLED
from facturahn.utils.helpers import parse_date

logger = logging.getLogger(__name__)


class Period(NamedTuple):
    start: Optional[date]
    end: Optional[date]

    def as_dict(self) -> dict:
        return {
            "start_date": self.start.isoformat() if self.start else None,
            "end_date": self.end.isoformat() if self.end else None,
        }


def parse_period(start_value: Optional[str], end_value: Optional[str]) -> Period:
    """Both bounds are optional and inclusive."""
    try:
        period = Period(parse_date(start_value), parse_date(end_value))
    except (TypeError, ValueError):
        raise ServiceError("Las fechas deben tener el formato YYYY-MM-DD") from None
    if period.start and period.end and period.start > period.end:
        raise ServiceError("La fecha inicial no puede ser posterior a la fecha final")
    return period


def summarize(invoices) -> dict:
    counted = [i for i in invoices if i.status != STATUS_CANCELLED]
    return {
        "invoice_count": len(invoices),
        "cancelled_count": len(invoices) - len(counted),
        "subtotal": sum(i.subtotal for i in counted),
        "tax": sum(i.tax for i in counted),
        "total": sum(i.total for i in counted),
    }


def _customer(store, company, customer_id):
    customer = store.get_customer(company.id, customer_id)
    if customer is None:
        raise NotFoundError("Cliente no encontrado")
    return customer


# --------------------------------------------------------------------------
# Invoices
# --------------------------------------------------------------------------
def sales_by_period(store, company, period: Period, statuses=None) -> dict:
    unknown = [s for s in statuses or [] if s not in INVOICE_STATUSES]
    if unknown:
        raise ServiceError(f"Estado inválido: {unknown[0]}")

    invoices = list(
        store.fiscal_invoices(company.id, period.start, period.end, statuses=statuses).order_by("date")
    )
    return {"invoices": invoices, "summary": summarize(invoices)}


def invoices_by_customer(store, company, customer_id, period: Period) -> dict:
    customer = _customer(store, company, customer_id)
    invoices = list(
        store.fiscal_invoices(company.id, period.start, period.end, customer_id=customer.id).order_by("date")
    )
    return {"customer": customer, "invoices": invoices, "summary": summarize(invoices)}


def invoice_status(store, company, period: Period) -> dict:
    """Count and amount per status, every status present even when empty."""
    statuses = {status: {"count": 0, "total": 0.0} for status in INVOICE_STATUSES}
    for row in store.invoice_status_summary(company.id, period.start, period.end):
        statuses[row["_id"]] = {"count": row["count"], "total": row["total"]}

    delivered = (
        store.fiscal_invoices(company.id, period.start, period.end)
        .filter(delivery_status=DELIVERY_DELIVERED, status__ne=STATUS_CANCELLED)
        .count()
    )
    return {"statuses": statuses, "delivered": delivered}


# --------------------------------------------------------------------------
# Customers
# --------------------------------------------------------------------------
def top_customers(store, company, period: Period, limit: int) -> list:
    return store.sales_by_customer(company.id, period.start, period.end, limit=limit)


def purchase_history(store, company, customer_id) -> dict:
    """Every invoice of the customer plus what they bought, newest first."""
    customer = _customer(store, company, customer_id)
    invoices = list(store.fiscal_invoices(company.id, customer_id=customer.id).order_by("-date"))
    return {
        "customer": customer,
        "invoices": invoices,
        "products": store.sales_by_product(company.id, customer_id=customer.id),
        "summary": summarize(invoices),
    }


# --------------------------------------------------------------------------
# Products
# --------------------------------------------------------------------------
def best_selling(store, company, period: Period, limit: int, include_services: bool = True) -> list:
    rows = store.sales_by_product(company.id, period.start, period.end)
    if not include_services:
        rows = [row for row in rows if not row.get("is_service")]
    return rows[:limit]


def current_inventory(store, company, low_stock_threshold: float) -> dict:
    products = store.stock_levels(company.id)
    low = [p for p in products if (p.quantity_in_stock or 0) <= low_stock_threshold]
    if low:
        logger.info("%d products at or below the stock alert level for company %s", len(low), company.id)
    return {"products": products, "low_stock": low, "threshold": low_stock_threshold}
