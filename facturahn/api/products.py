"""
API — Products, services and inventory orders.
"""

import math

from flask import jsonify, request

from facturahn.api import api_bp
from facturahn.api.auth import token_required
from facturahn.api.schemas import serialize_inventory_order, serialize_product
from facturahn.extensions import get_store
from facturahn.models import Product, User
from facturahn.services.stock_service import register_inventory_order


def _non_negative(value, field):
    """Return (number, error_response)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None, (jsonify({"error": f"{field} debe ser un número"}), 400)
    if not math.isfinite(number):
        return None, (jsonify({"error": f"{field} debe ser un número finito"}), 400)
    if number < 0:
        return None, (jsonify({"error": f"{field} no puede ser negativo"}), 400)
    return number, None


@api_bp.route("/products", methods=["GET"])
@token_required
def list_products(current_user: User, company):
    """Optional query param: q (description or SKU)."""
    products = get_store().list_products(company.id, request.args.get("q"))
    return jsonify([serialize_product(p) for p in products])


@api_bp.route("/products/<product_id>", methods=["GET"])
@token_required
def get_product(current_user: User, company, product_id):
    product = get_store().get_product(company.id, product_id)
    if not product:
        return jsonify({"error": "Producto no encontrado"}), 404
    return jsonify(serialize_product(product))


@api_bp.route("/products", methods=["POST"])
@token_required
def create_product(current_user: User, company):
    """
    JSON body:
    { "sku": "...", "description": "...", "unit_cost": 10.0,
      "is_service": false, "quantity_in_stock": 5 }
    """
    data = request.get_json(silent=True) or {}

    description = (data.get("description") or "").strip()
    if not description:
        return jsonify({"error": "La descripción es obligatoria"}), 400

    unit_cost, error = _non_negative(data.get("unit_cost", 0), "unit_cost")
    if error:
        return error

    is_service = bool(data.get("is_service"))
    stock = 0.0
    if not is_service:
        stock, error = _non_negative(data.get("quantity_in_stock", 0), "quantity_in_stock")
        if error:
            return error

    product = Product(
        company_id=company.id,
        sku=(data.get("sku") or "").strip(),
        description=description,
        unit_cost=unit_cost,
        is_service=is_service,
        quantity_in_stock=stock,
    )
    get_store().save(product)
    return jsonify(serialize_product(product)), 201


@api_bp.route("/products/<product_id>", methods=["PUT", "PATCH"])
@token_required
def update_product(current_user: User, company, product_id):
    """Stock is not edited here; use inventory orders."""
    product = get_store().get_product(company.id, product_id)
    if not product:
        return jsonify({"error": "Producto no encontrado"}), 404

    data = request.get_json(silent=True) or {}
    if "sku" in data:
        product.sku = (data["sku"] or "").strip()
    if "description" in data:
        product.description = (data["description"] or "").strip() or product.description
    if "unit_cost" in data:
        unit_cost, error = _non_negative(data["unit_cost"], "unit_cost")
        if error:
            return error
        product.unit_cost = unit_cost
    if "is_service" in data:
        product.is_service = bool(data["is_service"])

    get_store().save(product)
    return jsonify(serialize_product(product))


@api_bp.route("/products/<product_id>", methods=["DELETE"])
@token_required
def delete_product(current_user: User, company, product_id):
    product = get_store().get_product(company.id, product_id)
    if not product:
        return jsonify({"error": "Producto no encontrado"}), 404

    get_store().delete(product)
    return jsonify({"message": "Producto eliminado"}), 200


@api_bp.route("/products/inventory-orders", methods=["POST"])
@token_required
def create_inventory_order(current_user: User, company):
    """
    JSON body:
    {
      "type": "ADD" | "DELETE",
      "reason_description": "...",
      "update_products": [ { "product_id": "...", "quantity_delta": 3 } ]
    }
    """
    data = request.get_json(silent=True) or {}
    order = register_inventory_order(get_store(), company, data, user=current_user)
    return jsonify(serialize_inventory_order(order)), 201
