"""
API — Company users. Admins manage accounts; members may read their own.
"""

from flask import current_app, jsonify, request

from facturahn.api import api_bp
from facturahn.api.auth import MIN_PASSWORD_LENGTH, admin_token_required, token_required
from facturahn.api.schemas import serialize_user
from facturahn.extensions import get_store
from facturahn.models import User

ROLES = ("admin", "member")


def _company_user(company, user_id):
    user = get_store().get_user(user_id)
    if user is None or user.company_id != company.id:
        return None
    return user


def _is_last_admin(company, user) -> bool:
    admins = get_store().list_users(company.id, role="admin")
    return user.role == "admin" and len(admins) == 1


@api_bp.route("/users", methods=["GET"])
@admin_token_required
def list_users(current_user: User, company):
    """Optional query param: role (admin | member)."""
    role = request.args.get("role")
    users = get_store().list_users(company.id, role if role in ROLES else None)
    return jsonify([serialize_user(u) for u in users])


@api_bp.route("/users/<user_id>", methods=["GET"])
@token_required
def get_user(current_user: User, company, user_id):
    if current_user.role != "admin" and str(current_user.id) != user_id:
        return jsonify({"error": "Acceso denegado"}), 403

    user = _company_user(company, user_id)
    if user is None:
        return jsonify({"error": "Usuario no encontrado"}), 404
    return jsonify(serialize_user(user))


@api_bp.route("/users", methods=["POST"])
@admin_token_required
def create_user(current_user: User, company):
    """
    JSON body:
    { "full_name": "...", "email": "...", "password": "...", "role": "member" }
    """
    data = request.get_json(silent=True) or {}
    full_name = (data.get("full_name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not full_name or not email or not password:
        return jsonify({"error": "El nombre, el correo y la contraseña son obligatorios"}), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({"error": f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"}), 400

    store = get_store()
    if store.get_user_by_email(email):
        return jsonify({"error": "El correo ya está registrado"}), 409

    user = User(
        full_name=full_name,
        email=email,
        role=data.get("role") if data.get("role") in ROLES else "member",
        company_id=company.id,
    )
    user.set_password(password)
    store.save(user)
    current_app.logger.info("User %s added to company %s", email, company.id)
    return jsonify(serialize_user(user)), 201


@api_bp.route("/users/<user_id>", methods=["PUT", "PATCH"])
@admin_token_required
def update_user(current_user: User, company, user_id):
    """Name and role only; passwords change through /auth/password."""
    user = _company_user(company, user_id)
    if user is None:
        return jsonify({"error": "Usuario no encontrado"}), 404

    data = request.get_json(silent=True) or {}
    if "full_name" in data:
        user.full_name = (data["full_name"] or "").strip() or user.full_name
    if "role" in data:
        if data["role"] not in ROLES:
            return jsonify({"error": f"El rol debe ser uno de: {', '.join(ROLES)}"}), 400
        if data["role"] != "admin" and _is_last_admin(company, user):
            return jsonify({"error": "La empresa necesita al menos un administrador"}), 400
        user.role = data["role"]

    get_store().save(user)
    return jsonify(serialize_user(user))


@api_bp.route("/users/<user_id>", methods=["DELETE"])
@admin_token_required
def delete_user(current_user: User, company, user_id):
    user = _company_user(company, user_id)
    if user is None:
        return jsonify({"error": "Usuario no encontrado"}), 404
    if user.id == current_user.id:
        return jsonify({"error": "No puede eliminar su propio usuario"}), 400

    get_store().delete(user)
    current_app.logger.info("User %s removed from company %s", user.email, company.id)
    return jsonify({"message": "Usuario eliminado"})
