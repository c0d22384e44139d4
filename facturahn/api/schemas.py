"""
Model serialization helpers for API responses.
"""

from __future__ import annotations

from facturahn.models import (
    Company,
    Customer,
    InventoryOrder,
    Invoice,
    InvoiceItem,
    Product,
    SarCai,
    User,
)


def _iso(value):
    return value.isoformat() if value else None


def _id(value):
    return str(value) if value else None


def serialize_user(user: User) -> dict:
    """Return a JSON-safe dict for a User."""
    return {
        "id": str(user.id),
        "full_name": user.full_name,
        "email": user.email,
        "role": user.role,
        "company_id": _id(user.company_id),
    }


def serialize_company(company: Company) -> dict:
    return {
        "id": str(company.id),
        "name": company.name,
        "rtn": company.rtn,
        "address0": company.address0,
        "address1": company.address1,
        "address2": company.address2,
        "phone": company.phone,
        "email": company.email,
        "current_sar_cai_id": _id(company.current_sar_cai_id),
    }


def serialize_sar_cai(sar_cai: SarCai) -> dict:
    return {
        "id": str(sar_cai.id),
        "cai": sar_cai.cai,
        "limit_date": _iso(sar_cai.limit_date),
        "range_invoice1": sar_cai.range_invoice1,
        "range_invoice2": sar_cai.range_invoice2,
        "created_at": _iso(sar_cai.created_at),
    }


def serialize_customer(customer: Customer) -> dict:
    return {
        "id": str(customer.id),
        "name": customer.name,
        "rtn": customer.rtn,
        "email": customer.email,
        "is_universal": customer.is_universal,
        "contacts": [
            {"name": c.name, "position": c.position, "email": c.email, "phone": c.phone}
            for c in customer.contacts
        ],
    }


def serialize_product(product: Product) -> dict:
    return {
        "id": str(product.id),
        "sku": product.sku,
        "description": product.description,
        "unit_cost": product.unit_cost,
        "is_service": product.is_service,
        "quantity_in_stock": None if product.is_service else product.quantity_in_stock,
    }


def serialize_inventory_order(order: InventoryOrder) -> dict:
    return {
        "id": str(order.id),
        "type": order.type,
        "reason_description": order.reason_description,
        "update_products": [
            {"product_id": str(m.product_id), "quantity_delta": m.quantity_delta}
            for m in order.update_products
        ],
        "created_at": _iso(order.created_at),
    }


def serialize_invoice_item(item: InvoiceItem) -> dict:
    return {
        "product_id": _id(item.product_id),
        "description": item.description,
        "quantity": item.quantity,
        "unit_cost": item.unit_cost,
        "discount": item.discount,
        "is_service": item.is_service,
        "total": item.total,
    }


def serialize_invoice(invoice: Invoice, *, include_items: bool = False) -> dict:
    """Return a JSON-safe dict for an Invoice."""
    customer = invoice.customer
    data = {
        "id": str(invoice.id),
        "invoice_number": invoice.invoice_number,
        "proforma_number": invoice.proforma_number,
        "is_proforma": invoice.is_proforma,
        "is_exempt": invoice.is_exempt,
        "cai": invoice.cai,
        "customer_id": _id(invoice.customer_id),
        "customer": {
            "name": customer.name if customer else None,
            "rtn": customer.rtn if customer else None,
            "email": customer.email if customer else None,
        },
        "date": _iso(invoice.date),
        "subtotal": invoice.subtotal,
        "tax_exonerado": invoice.tax_exonerado,
        "tax_exento": invoice.tax_exento,
        "tax_gravado_15": invoice.tax_gravado_15,
        "tax_gravado_18": invoice.tax_gravado_18,
        "tax": invoice.tax,
        "tax_18": invoice.tax_18,
        "total": invoice.total,
        "numbers_to_letters": invoice.numbers_to_letters,
        "status": invoice.status,
        "delivery_status": invoice.delivery_status,
        "delivered_at": _iso(invoice.delivered_at),
        "created_at": _iso(invoice.created_at),
        "updated_at": _iso(invoice.updated_at),
    }
    if include_items:
        data["items"] = [serialize_invoice_item(i) for i in invoice.items]
    return data


def serialize_customer_sales(row: dict) -> dict:
    return {
        "customer_id": _id(row["_id"]),
        "name": row.get("name"),
        "invoice_count": row["invoice_count"],
        "total_sales": row["total_sales"],
    }


def serialize_product_sales(row: dict) -> dict:
    return {
        "product_id": _id(row["_id"]),
        "description": row.get("description"),
        "is_service": bool(row.get("is_service")),
        "quantity_sold": row["quantity_sold"],
        "total_sales": row["total_sales"],
    }


def serialize_stock_level(product: Product, low_stock_threshold: float) -> dict:
    return dict(
        serialize_product(product),
        low_stock=(product.quantity_in_stock or 0) <= low_stock_threshold,
    )
