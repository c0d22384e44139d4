"""
Manual stock adjustments (inventory orders).
"""

import logging

from facturahn.errors import ServiceError
from facturahn.services.inventory import ORDER_ADD, validate_inventory_order

logger = logging.getLogger(__name__)


def register_inventory_order(store, company, data: dict, user=None):
    """Apply an ADD/DELETE order to stock and keep a record of it."""
    order_type = (data.get("type") or "").upper()
    reason = (data.get("reason_description") or "").strip()
    rows = data.get("update_products") or []

    if not reason:
        raise ServiceError("Razón de la operación es requerida")
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise ServiceError("update_products debe ser una lista de productos")

    products = store.products_by_id(company.id, [row.get("product_id") for row in rows])
    errors = validate_inventory_order(order_type, rows, products)
    if errors:
        raise ServiceError("; ".join(errors))

    sign = 1 if order_type == ORDER_ADD else -1
    for row in rows:
        store.adjust_stock(row["product_id"], sign * row["quantity_delta"])

    order = store.create_inventory_order(
        company.id, order_type, reason, rows, user_id=user.id if user is not None else None
    )
    logger.info("Inventory order %s (%s) with %d products", order.id, order_type, len(rows))
    return order
