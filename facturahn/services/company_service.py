"""
Company fiscal data — CAI registration and status.
"""

import logging
from datetime import date
from typing import Optional

from facturahn.errors import FiscalValidationError, ServiceError
from facturahn.services.fiscal_engine import (
    cai_expiration_notice,
    is_valid_cai,
    validate_authorization_range,
)
from facturahn.utils.helpers import parse_date

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ("name", "rtn", "address0", "address1", "address2", "phone", "email")


def update_company(store, company, data: dict):
    for field in COMPANY_FIELDS:
        if field in data:
            value = (data[field] or "").strip()
            if field == "name" and not value:
                raise ServiceError("El nombre de la compañía es requerido")
            setattr(company, field, value)
    return store.save(company)


def register_sar_cai(store, company, data: dict):
    """Validate a new CAI and make it the company's active authorization."""
    cai = (data.get("cai") or "").strip().upper()
    if not is_valid_cai(cai):
        raise ServiceError("El formato del CAI no es válido")

    try:
        limit_date = parse_date(data.get("limit_date"))
    except (TypeError, ValueError):
        limit_date = None
    if limit_date is None:
        raise ServiceError("limit_date es requerido con formato YYYY-MM-DD")

    range_start = (data.get("range_invoice1") or "").strip()
    range_end = (data.get("range_invoice2") or "").strip()
    result = validate_authorization_range(range_start, range_end)
    if result is not True:
        raise FiscalValidationError(result)

    sar_cai = store.register_sar_cai(company, cai, limit_date, range_start, range_end)
    logger.info(
        "CAI %s registered for company %s (%s to %s, expires %s)",
        cai, company.id, range_start, range_end, limit_date.isoformat(),
    )
    return sar_cai


def active_cai_status(store, company, today: Optional[date] = None, warning_days: int = 30) -> dict:
    """Active CAI with its expiration notice, for dashboards and forms."""
    sar_cai = store.get_active_sar_cai(company)
    if sar_cai is None:
        return {"active": None, "notice": None}
    notice = cai_expiration_notice(sar_cai.limit_date, today=today, warning_days=warning_days)
    return {"active": sar_cai, "notice": notice}
