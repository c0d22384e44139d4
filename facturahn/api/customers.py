"""
API — Customer CRUD.
"""

from flask import jsonify, request

from facturahn.api import api_bp
from facturahn.api.auth import token_required
from facturahn.api.schemas import serialize_customer
from facturahn.extensions import get_store
from facturahn.models import Contact, Customer, User


def _contacts(data):
    return [
        Contact(
            name=(c.get("name") or "").strip(),
            position=(c.get("position") or "").strip(),
            email=(c.get("email") or "").strip(),
            phone=(c.get("phone") or "").strip(),
        )
        for c in data.get("contacts") or []
        if isinstance(c, dict)
    ]


def _editable_customer(company, customer_id):
    customer = get_store().get_customer(company.id, customer_id)
    if not customer:
        return None, (jsonify({"error": "Cliente no encontrado"}), 404)
    if customer.is_universal:
        return None, (jsonify({"error": "El cliente universal no se puede modificar"}), 400)
    return customer, None


@api_bp.route("/customers", methods=["GET"])
@token_required
def list_customers(current_user: User, company):
    """Optional query param: q (name, RTN or email)."""
    customers = get_store().list_customers(company.id, request.args.get("q"))
    return jsonify([serialize_customer(c) for c in customers])


@api_bp.route("/customers/<customer_id>", methods=["GET"])
@token_required
def get_customer(current_user: User, company, customer_id):
    customer = get_store().get_customer(company.id, customer_id)
    if not customer:
        return jsonify({"error": "Cliente no encontrado"}), 404
    return jsonify(serialize_customer(customer))


@api_bp.route("/customers", methods=["POST"])
@token_required
def create_customer(current_user: User, company):
    data = request.get_json(silent=True) or {}

    name = (data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "El nombre es obligatorio"}), 400

    customer = Customer(
        company_id=company.id,
        name=name,
        rtn=(data.get("rtn") or "").strip(),
        email=(data.get("email") or "").strip(),
        contacts=_contacts(data),
    )
    get_store().save(customer)
    return jsonify(serialize_customer(customer)), 201


@api_bp.route("/customers/<customer_id>", methods=["PUT", "PATCH"])
@token_required
def update_customer(current_user: User, company, customer_id):
    customer, error = _editable_customer(company, customer_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    if "name" in data:
        customer.name = (data["name"] or "").strip() or customer.name
    if "rtn" in data:
        customer.rtn = (data["rtn"] or "").strip()
    if "email" in data:
        customer.email = (data["email"] or "").strip()
    if "contacts" in data:
        customer.contacts = _contacts(data)

    get_store().save(customer)
    return jsonify(serialize_customer(customer))


@api_bp.route("/customers/<customer_id>", methods=["DELETE"])
@token_required
def delete_customer(current_user: User, company, customer_id):
    customer, error = _editable_customer(company, customer_id)
    if error:
        return error

    get_store().delete(customer)
    return jsonify({"message": "Cliente eliminado"}), 200
