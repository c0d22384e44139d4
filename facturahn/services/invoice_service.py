"""
Invoice business logic — numbering, totals, status and delivery.

Every function takes the store as its first argument; the fiscal rules
themselves live in :mod:`facturahn.services.fiscal_engine`.
"""

import logging
import math
from datetime import datetime
from typing import NamedTuple, Optional

from mongoengine.errors import NotUniqueError

from facturahn.errors import (
    FiscalValidationError,
    InsufficientStockError,
    NotFoundError,
    ServiceError,
)
from facturahn.models import CustomerSnapshot, Invoice, InvoiceItem
from facturahn.services.fiscal_engine import (
    Comparison,
    InvoiceNumberExhaustedError,
    RangeAuthorization,
    compare_invoice_numbers,
    compute_totals,
    next_invoice_number,
    should_disable_invoice_generation,
    validate_against_active_authorization,
)
from facturahn.services.inventory import (
    DELIVERY_DELIVERED,
    DELIVERY_PENDING,
    INVOICE_STATUSES,
    STATUS_CANCELLED,
    STATUS_PAID,
    can_transition,
    required_quantities,
    stock_shortages,
)
from facturahn.utils.helpers import amount_to_words, parse_date, parse_object_id

logger = logging.getLogger(__name__)

INCOMPLETE_INVOICE_MESSAGE = (
    "La factura está incompleta: seleccione un cliente, agregue productos con "
    "descripción y, si no es proforma, verifique el RTN del cliente"
)
TOTAL_TOO_LARGE_MESSAGE = "El total de la factura excede el monto máximo permitido"
DUPLICATE_NUMBER_MESSAGE = "El número de factura ya fue emitido"


# --------------------------------------------------------------------------
# Numbering
# --------------------------------------------------------------------------
def format_proforma_number(sequence: int) -> str:
    """Return a proforma number like ``PF-00000001``."""
    return f"PF-{sequence:08d}"


def generate_proforma_number(store, company_id) -> str:
    """Generate the next sequential proforma number for the company."""
    last = store.last_proforma_number(company_id)
    sequence = int(last.rsplit("-", 1)[-1]) + 1 if last else 1
    return format_proforma_number(sequence)


class NumberSuggestion(NamedTuple):
    previous: Optional[str]
    next_number: Optional[str]
    last_invoice_exists: bool
    authorization: Optional[RangeAuthorization]


def suggest_next_number(store, company) -> NumberSuggestion:
    """Previous number and the suggested next one for a new fiscal invoice.

    Without issued invoices the previous number is the start of the active
    range. After a CAI renewal whose range begins above the last issued
    number, the suggestion jumps to the new range start.
    """
    sar_cai = store.get_active_sar_cai(company)
    authorization = sar_cai.as_authorization() if sar_cai else None
    last = store.last_invoice_number(company.id)

    if last is None:
        start = authorization.range_start if authorization else None
        return NumberSuggestion(start, start, False, authorization)

    if authorization and compare_invoice_numbers(last, authorization.range_start) is Comparison.LESS:
        return NumberSuggestion(last, authorization.range_start, True, authorization)

    try:
        next_number = next_invoice_number(last)
    except InvoiceNumberExhaustedError:
        logger.warning("Invoice correlative exhausted after %s", last)
        next_number = None
    return NumberSuggestion(last, next_number, True, authorization)


# --------------------------------------------------------------------------
# Line items and totals
# --------------------------------------------------------------------------
def _amount(entry: dict, key: str, label: str, default=None) -> float:
    value = entry.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ServiceError(f"{label} debe ser un número") from None
    if not math.isfinite(number):
        raise ServiceError(f"{label} debe ser un número finito")
    if number < 0:
        raise ServiceError(f"{label} no puede ser negativo")
    return number


def build_items(store, company_id, rows) -> list:
    """Turn request rows into ``InvoiceItem`` documents.

    Rows linked to a product inherit its description, unit cost and
    service flag unless they override the first two.
    """
    if not all(isinstance(row, dict) for row in rows):
        raise ServiceError("Cada línea de la factura debe ser un objeto")

    products = store.products_by_id(
        company_id, [row.get("product_id") for row in rows if row.get("product_id")]
    )
    items = []
    for row in rows:
        product = None
        if row.get("product_id"):
            product = products.get(str(row["product_id"]))
            if product is None:
                raise NotFoundError(f"Producto {row['product_id']} no encontrado")

        description = row.get("description")
        if description is None and product is not None:
            description = product.description
        unit_cost_default = product.unit_cost if product is not None else None

        items.append(
            InvoiceItem(
                product_id=product.id if product is not None else None,
                description=(description or "").strip(),
                quantity=_amount(row, "quantity", "La cantidad"),
                unit_cost=_amount(row, "unit_cost", "El precio unitario", unit_cost_default),
                discount=_amount(row, "discount", "El descuento", 0),
                is_service=product.is_service if product is not None else bool(row.get("is_service")),
            )
        )
    return items


def apply_totals(invoice: Invoice) -> Invoice:
    """Recompute every derived amount of *invoice* from its items."""
    breakdown = compute_totals(invoice.items, invoice.is_exempt)
    for field, value in breakdown.as_dict().items():
        setattr(invoice, field, value)
    try:
        invoice.numbers_to_letters = amount_to_words(breakdown.total)
    except (OverflowError, ValueError):
        raise ServiceError(TOTAL_TOO_LARGE_MESSAGE) from None
    return invoice


def _snapshot(customer) -> CustomerSnapshot:
    return CustomerSnapshot(name=customer.name, rtn=customer.rtn or "", email=customer.email or "")


def _invoice_date(data: dict, now: datetime) -> datetime:
    try:
        value = parse_date(data.get("date"))
    except (TypeError, ValueError):
        raise ServiceError("La fecha debe tener el formato YYYY-MM-DD") from None
    return datetime.combine(value, datetime.min.time()) if value else now


def _label(invoice: Invoice) -> str:
    return invoice.invoice_number or invoice.proforma_number or str(invoice.id)


# --------------------------------------------------------------------------
# Create / update / delete
# --------------------------------------------------------------------------
def create_invoice(store, company, data: dict, user=None, now: Optional[datetime] = None) -> Invoice:
    """Validate and persist a new fiscal or proforma invoice.

    *now* is the business clock: it dates invoices sent without a date and
    decides whether the active CAI has expired.
    """
    now = now or datetime.utcnow()
    is_proforma = bool(data.get("is_proforma"))

    customer = store.get_customer(company.id, data.get("customer_id"))
    if customer is None:
        raise NotFoundError("Cliente no encontrado")

    items = build_items(store, company.id, data.get("items") or [])
    if should_disable_invoice_generation(is_proforma, items, customer):
        raise ServiceError(INCOMPLETE_INVOICE_MESSAGE)

    invoice = Invoice(
        company_id=company.id,
        customer_id=customer.id,
        customer=_snapshot(customer),
        is_proforma=is_proforma,
        is_exempt=bool(data.get("is_exempt")),
        date=_invoice_date(data, now),
        user_id=user.id if user is not None else None,
        items=items,
    )

    if is_proforma:
        invoice.proforma_number = generate_proforma_number(store, company.id)
    else:
        suggestion = suggest_next_number(store, company)
        candidate = (data.get("invoice_number") or "").strip() or suggestion.next_number or ""
        result = validate_against_active_authorization(
            suggestion.previous or "",
            candidate,
            suggestion.authorization,
            suggestion.last_invoice_exists,
            today=now.date(),
        )
        if result is not True:
            logger.warning("Invoice number %r rejected: %s", candidate, result.message)
            raise FiscalValidationError(result)
        invoice.invoice_number = candidate
        invoice.cai = suggestion.authorization.cai

    apply_totals(invoice)

    deliver_now = bool(data.get("delivered"))
    if deliver_now:
        _check_deliverable(invoice)
        _ensure_stock(store, invoice)

    try:
        store.save(invoice)
    except NotUniqueError:
        logger.warning("Invoice number %s already issued for company %s", invoice.invoice_number, company.id)
        raise ServiceError(DUPLICATE_NUMBER_MESSAGE, 409) from None
    logger.info(
        "Invoice %s issued for company %s (total %.2f)",
        _label(invoice), company.id, invoice.total,
    )

    if deliver_now:
        deliver_invoice(store, invoice)
    return invoice


def update_invoice(store, invoice: Invoice, data: dict, now: Optional[datetime] = None) -> Invoice:
    """Edit a pending invoice. Number and proforma flag are fixed."""
    if invoice.status == STATUS_PAID:
        raise ServiceError("No se puede editar una factura que ya está pagada")
    if invoice.status == STATUS_CANCELLED:
        raise ServiceError("No se puede editar una factura anulada")

    number = data.get("invoice_number")
    if number and number != invoice.invoice_number:
        raise ServiceError("El número de factura no se puede modificar")
    if "is_proforma" in data and bool(data["is_proforma"]) != invoice.is_proforma:
        raise ServiceError("No se puede cambiar el tipo de factura")

    if "customer_id" in data:
        customer = store.get_customer(invoice.company_id, data["customer_id"])
        if customer is None:
            raise NotFoundError("Cliente no encontrado")
        invoice.customer_id = customer.id
        invoice.customer = _snapshot(customer)

    if "date" in data:
        invoice.date = _invoice_date(data, now or datetime.utcnow())
    if "is_exempt" in data:
        invoice.is_exempt = bool(data["is_exempt"])

    if "items" in data:
        if invoice.delivery_status == DELIVERY_DELIVERED:
            raise ServiceError("No se pueden modificar los productos de una factura entregada")
        invoice.items = build_items(store, invoice.company_id, data["items"] or [])

    if should_disable_invoice_generation(invoice.is_proforma, invoice.items, invoice.customer):
        raise ServiceError(INCOMPLETE_INVOICE_MESSAGE)

    apply_totals(invoice)
    store.save(invoice)
    return invoice


def delete_invoice(store, invoice: Invoice) -> None:
    """Only proformas are deleted; fiscal invoices must be cancelled."""
    if not invoice.is_proforma:
        raise ServiceError("Las facturas fiscales no se eliminan; debe anularlas")
    store.delete(invoice)
    logger.info("Proforma %s deleted", invoice.proforma_number)


# --------------------------------------------------------------------------
# Status and delivery
# --------------------------------------------------------------------------
def change_status(store, company, invoice_ids, status: str) -> list:
    """Move several invoices to *status*, all or none."""
    if status not in INVOICE_STATUSES:
        raise ServiceError(f"Estado inválido: {status}")

    ids = {str(i) for i in invoice_ids or []}
    if not ids or any(parse_object_id(i) is None for i in ids):
        raise ServiceError("invoice_ids debe contener identificadores válidos")

    invoices = store.get_invoices(company.id, ids)
    if len(invoices) != len(ids):
        raise NotFoundError("Factura no encontrada")

    for invoice in invoices:
        if invoice.status != status and not can_transition(invoice.status, status):
            raise ServiceError(
                f"La factura {_label(invoice)} no puede pasar de {invoice.status} a {status}"
            )

    for invoice in invoices:
        if invoice.status == status:
            continue
        if status == STATUS_CANCELLED and invoice.delivery_status == DELIVERY_DELIVERED:
            _move_stock(store, invoice, sign=1)
            invoice.delivery_status = DELIVERY_PENDING
            invoice.delivered_at = None
        logger.info("Invoice %s: %s -> %s", _label(invoice), invoice.status, status)
        invoice.status = status
        store.save(invoice)
    return invoices


def _check_deliverable(invoice: Invoice) -> None:
    if invoice.is_proforma:
        raise ServiceError("Las facturas proforma no afectan el inventario")
    if invoice.status == STATUS_CANCELLED:
        raise ServiceError("No se puede entregar una factura anulada")
    if invoice.delivery_status == DELIVERY_DELIVERED:
        raise ServiceError("La factura ya fue entregada")


def _ensure_stock(store, invoice: Invoice) -> None:
    line_items = invoice.line_items()
    products = store.products_by_id(invoice.company_id, required_quantities(line_items))
    shortages = stock_shortages(line_items, products)
    if shortages:
        raise InsufficientStockError(shortages)


def _move_stock(store, invoice: Invoice, sign: int) -> None:
    line_items = invoice.line_items()
    needed = required_quantities(line_items)
    products = store.products_by_id(invoice.company_id, needed)
    for product_id, quantity in needed.items():
        product = products.get(product_id)
        if product is None or product.is_service:
            continue
        store.adjust_stock(product_id, sign * quantity)


def deliver_invoice(store, invoice: Invoice) -> Invoice:
    """Mark goods as delivered and take them out of stock."""
    _check_deliverable(invoice)
    _ensure_stock(store, invoice)
    _move_stock(store, invoice, sign=-1)

    invoice.delivery_status = DELIVERY_DELIVERED
    invoice.delivered_at = datetime.utcnow()
    store.save(invoice)
    logger.info("Invoice %s delivered", _label(invoice))
    return invoice
