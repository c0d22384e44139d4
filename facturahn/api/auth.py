"""
API — Bearer tokens, login and the signed-in user's account.

A token is an itsdangerous signature over the user id and company id.
It is valid for TOKEN_MAX_AGE seconds and stops working as soon as the
user is removed or moved to another company.
"""

from __future__ import annotations

from functools import wraps

from flask import current_app, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from facturahn.api import api_bp
from facturahn.api.schemas import serialize_company, serialize_user
from facturahn.extensions import get_store
from facturahn.models import User

TOKEN_SALT = "facturahn-api"
MIN_PASSWORD_LENGTH = 6


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def generate_token(user: User) -> str:
    return _serializer().dumps({"uid": str(user.id), "cid": str(user.company_id)})


def verify_token(token: str) -> User | None:
    """Resolve *token* to its user, or None when it is invalid or stale."""
    try:
        claims = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except (BadSignature, SignatureExpired):
        return None

    user = get_store().get_user(claims.get("uid"))
    if user is None or str(user.company_id) != claims.get("cid"):
        return None
    return user


def _bearer_token() -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme != "Bearer" or not token:
        return None
    return token.strip()


# ---------------------------------------------------------------------------
# Decorators
# ---------------------------------------------------------------------------
def token_required(view):
    """Authenticate the request; the view gets ``current_user`` and ``company``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Falta el encabezado Authorization o no es válido"}), 401

        user = verify_token(token)
        if user is None:
            return jsonify({"error": "Token inválido o expirado"}), 401

        company = get_store().get_company(user.company_id)
        if company is None:
            return jsonify({"error": "El usuario no pertenece a ninguna empresa"}), 403

        return view(*args, current_user=user, company=company, **kwargs)

    return wrapper


def admin_token_required(view):
    """token_required plus the ``admin`` role."""

    @wraps(view)
    @token_required
    def wrapper(*args, **kwargs):
        if kwargs["current_user"].role != "admin":
            return jsonify({"error": "Se requiere acceso de administrador"}), 403
        return view(*args, **kwargs)

    return wrapper


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@api_bp.route("/auth/login", methods=["POST"])
def api_login():
    """JSON body: { "email": "...", "password": "..." }"""
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"error": "El correo y la contraseña son obligatorios"}), 400

    user = get_store().get_user_by_email(email)
    if user is None or not user.check_password(password):
        current_app.logger.info("Failed login for %s", email)
        return jsonify({"error": "Credenciales inválidas"}), 401

    return jsonify({
        "token": generate_token(user),
        "expires_in": current_app.config["TOKEN_MAX_AGE"],
        "user": serialize_user(user),
    })


@api_bp.route("/auth/me")
@token_required
def api_me(current_user: User, company):
    return jsonify(dict(serialize_user(current_user), company=serialize_company(company)))


@api_bp.route("/auth/refresh", methods=["POST"])
@token_required
def api_refresh(current_user: User, company):
    """Exchange a still-valid token for a fresh one."""
    return jsonify({
        "token": generate_token(current_user),
        "expires_in": current_app.config["TOKEN_MAX_AGE"],
    })


@api_bp.route("/auth/password", methods=["POST"])
@token_required
def api_change_password(current_user: User, company):
    """JSON body: { "current_password": "...", "new_password": "..." }"""
    data = request.get_json(silent=True) or {}
    if not current_user.check_password(data.get("current_password") or ""):
        return jsonify({"error": "La contraseña actual no es correcta"}), 400

    new_password = data.get("new_password") or ""
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return jsonify({
            "error": f"La nueva contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
        }), 400

    current_user.set_password(new_password)
    get_store().save(current_user)
    current_app.logger.info("Password changed for %s", current_user.email)
    return jsonify({"message": "Contraseña actualizada"})
