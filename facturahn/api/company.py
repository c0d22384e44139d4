"""
API — Company data and CAI (SAR authorization) management.
"""

from flask import current_app, jsonify, request

from facturahn.api import api_bp
from facturahn.api.auth import token_required, admin_token_required
from facturahn.api.schemas import serialize_company, serialize_sar_cai
from facturahn.extensions import business_now, get_store
from facturahn.models import User
from facturahn.services import company_service


@api_bp.route("/company", methods=["GET"])
@token_required
def get_company(current_user: User, company):
    return jsonify(serialize_company(company))


@api_bp.route("/company", methods=["PUT", "PATCH"])
@admin_token_required
def update_company(current_user: User, company):
    data = request.get_json(silent=True) or {}
    company_service.update_company(get_store(), company, data)
    return jsonify(serialize_company(company))


# --------------------------------------------------------------------------
# CAI
# --------------------------------------------------------------------------
@api_bp.route("/company/sar-cai", methods=["GET"])
@token_required
def list_sar_cai(current_user: User, company):
    """All CAIs registered by the company, newest first."""
    records = get_store().list_sar_cai(company.id)
    return jsonify([
        dict(serialize_sar_cai(r), active=r.id == company.current_sar_cai_id)
        for r in records
    ])


@api_bp.route("/company/sar-cai", methods=["POST"])
@admin_token_required
def create_sar_cai(current_user: User, company):
    """
    Register a new CAI; it replaces the active one.

    JSON body:
    {
      "cai": "35A1B2-C3D4E5F6A7B8-C9D0E1-F2A3B4-C5",
      "limit_date": "2026-12-31",
      "range_invoice1": "000-001-01-00000001",
      "range_invoice2": "000-001-01-00005000"
    }
    """
    data = request.get_json(silent=True) or {}
    sar_cai = company_service.register_sar_cai(get_store(), company, data)
    return jsonify(serialize_sar_cai(sar_cai)), 201


@api_bp.route("/company/sar-cai/active", methods=["GET"])
@token_required
def active_sar_cai(current_user: User, company):
    status = company_service.active_cai_status(
        get_store(),
        company,
        today=business_now().date(),
        warning_days=current_app.config["CAI_WARNING_DAYS"],
    )
    if status["active"] is None:
        return jsonify({"error": "No hay un CAI activo"}), 404

    notice = status["notice"]
    return jsonify({
        "sar_cai": serialize_sar_cai(status["active"]),
        "notice": notice.as_dict() if notice else None,
    })
