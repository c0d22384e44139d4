"""
RESTful API v1 — JSON endpoints for FacturaHN.

All routes are prefixed with ``/api/v1``.
"""

from flask import Blueprint, current_app, jsonify

from facturahn.errors import ServiceError

api_bp = Blueprint("api", __name__, url_prefix="/api/v1")


@api_bp.errorhandler(ServiceError)
def handle_service_error(error: ServiceError):
    current_app.logger.debug("Request rejected (%s): %s", error.status_code, error.message)
    return jsonify(error.to_dict()), error.status_code


from facturahn.api import auth, users, company, customers, products, invoices, dashboard, reports  # noqa: E402, F401
