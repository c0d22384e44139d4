"""
Inventory rules — invoice status transitions and stock checks.
"""

import math
from typing import Iterable, Mapping, NamedTuple

STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"
INVOICE_STATUSES = (STATUS_PENDING, STATUS_PAID, STATUS_CANCELLED)

DELIVERY_PENDING = "pending"
DELIVERY_DELIVERED = "delivered"

ORDER_ADD = "ADD"
ORDER_DELETE = "DELETE"

_TRANSITIONS = {
    STATUS_PENDING: {STATUS_PAID, STATUS_CANCELLED},
    STATUS_PAID: {STATUS_PENDING, STATUS_CANCELLED},
    STATUS_CANCELLED: set(),
}


class Shortage(NamedTuple):
    product_id: str
    description: str
    requested: float
    available: float

    def as_dict(self) -> dict:
        return self._asdict()


def can_transition(current: str, new: str) -> bool:
    """Whether an invoice may move from *current* to *new* status."""
    return new in _TRANSITIONS.get(current, set())


def required_quantities(line_items: Iterable) -> dict:
    """Units needed per product, ignoring services and free-text lines."""
    needed: dict = {}
    for item in line_items:
        if item.is_service or not item.product_id:
            continue
        key = str(item.product_id)
        needed[key] = needed.get(key, 0) + item.quantity
    return needed


def stock_shortages(line_items: Iterable, products: Mapping) -> list:
    """Products whose stock cannot cover *line_items*.

    *products* maps product id (as string) to a product with
    ``description``, ``is_service`` and ``quantity_in_stock``.
    """
    shortages = []
    for product_id, requested in required_quantities(line_items).items():
        product = products.get(product_id)
        if product is None:
            shortages.append(Shortage(product_id, "", requested, 0))
            continue
        if product.is_service:
            continue
        available = product.quantity_in_stock or 0
        if requested > available:
            shortages.append(
                Shortage(product_id, product.description, requested, available)
            )
    return shortages


def validate_inventory_order(order_type: str, rows: Iterable, products: Mapping) -> list:
    """Return error messages for an ADD/DELETE stock order; empty when valid.

    Each row carries ``product_id`` and ``quantity_delta``.
    """
    errors = []
    if order_type not in (ORDER_ADD, ORDER_DELETE):
        return ["El tipo de operación debe ser ADD o DELETE"]

    rows = list(rows)
    if not rows:
        return ["Debe incluir al menos un producto"]

    for row in rows:
        product_id = str(row.get("product_id") or "")
        delta = row.get("quantity_delta")
        product = products.get(product_id)
        if product is None:
            errors.append(f"Producto {product_id or '?'} no encontrado")
            continue
        if product.is_service:
            errors.append(f"{product.description}: los servicios no manejan inventario")
            continue
        if not isinstance(delta, (int, float)) or not math.isfinite(delta) or delta <= 0:
            errors.append(f"{product.description}: la cantidad debe ser mayor que cero")
            continue
        if order_type == ORDER_DELETE and delta > (product.quantity_in_stock or 0):
            errors.append(f"{product.description}: la cantidad no puede ser mayor al stock")
    return errors
