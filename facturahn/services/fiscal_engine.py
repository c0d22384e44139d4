"""
Fiscal invoice engine — SAR/CAI numbering rules and tax computation.

Everything here is a pure function over strings and numbers. Validation
failures are *returned* as :class:`FiscalError` values so the caller can
show ``error.message`` to the user; nothing in this module touches the
database.

Invoice numbers have the fixed shape ``NNN-NNN-NN-NNNNNNNN`` (establishment,
point of issue, document type, correlative). They are ordered group by
group as integers, most significant group first.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, NamedTuple, Optional, Union

INVOICE_NUMBER_PATTERN = re.compile(r"^(\d{3})-(\d{3})-(\d{2})-(\d{8})$")
CAI_PATTERN = re.compile(
    r"^[0-9A-Fa-f]{6}-[0-9A-Fa-f]{12}-[0-9A-Fa-f]{6}-[0-9A-Fa-f]{6}-[0-9A-Fa-f]{2}$"
)
GROUP_WIDTHS = (3, 3, 2, 8)
MAX_CORRELATIVE = 10 ** GROUP_WIDTHS[-1] - 1

ISV_RATE = 0.15

FORMAT_HINT = "NNN-NNN-NN-NNNNNNNN"


# ---------------------------------------------------------------------------
# Result values
# ---------------------------------------------------------------------------
class Comparison(enum.Enum):
    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"


@dataclass(frozen=True)
class FiscalError:
    """Base class for validation results that reject an invoice number."""

    message: str

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class FormatError(FiscalError):
    field: str = "invoice_number"


@dataclass(frozen=True)
class OutOfRangeError(FiscalError):
    range_start: Optional[str] = None
    range_end: Optional[str] = None


@dataclass(frozen=True)
class SequenceError(FiscalError):
    pass


@dataclass(frozen=True)
class NoAuthorizationError(FiscalError):
    pass


@dataclass(frozen=True)
class ExpiredAuthorizationError(FiscalError):
    expiration_date: Optional[date] = None


ValidationResult = Union[bool, FiscalError]


class InvoiceNumberExhaustedError(ValueError):
    """The eight-digit correlative cannot be advanced any further."""


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------
class InvoiceNumber(NamedTuple):
    """A parsed, well-formed invoice number."""

    establishment: int
    point_of_issue: int
    document_type: int
    correlative: int

    @classmethod
    def parse(cls, value: str) -> "InvoiceNumber":
        """Parse *value*, raising ``ValueError`` if it is malformed."""
        match = INVOICE_NUMBER_PATTERN.match(value or "")
        if not match:
            raise ValueError(
                f"Invalid invoice number {value!r}: must follow {FORMAT_HINT}"
            )
        return cls(*(int(group) for group in match.groups()))

    def format(self) -> str:
        return "-".join(
            str(group).zfill(width) for group, width in zip(self, GROUP_WIDTHS)
        )

    def __str__(self) -> str:
        return self.format()


class RangeAuthorization(NamedTuple):
    """Snapshot of a CAI: authorized numeric window and its deadline."""

    range_start: str
    range_end: str
    expiration_date: date
    cai: str = ""


class LineItem(NamedTuple):
    description: str
    quantity: float
    unit_cost: float
    discount: float = 0.0
    is_service: bool = False
    product_id: Optional[str] = None


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: float
    tax_exonerado: float
    tax_exento: float
    tax_gravado_15: float
    tax_gravado_18: float
    tax: float
    tax_18: float
    total: float

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax_exonerado": self.tax_exonerado,
            "tax_exento": self.tax_exento,
            "tax_gravado_15": self.tax_gravado_15,
            "tax_gravado_18": self.tax_gravado_18,
            "tax": self.tax,
            "tax_18": self.tax_18,
            "total": self.total,
        }


# ---------------------------------------------------------------------------
# Invoice numbers
# ---------------------------------------------------------------------------
def parse_invoice_number(value: str) -> Union[InvoiceNumber, FormatError]:
    try:
        return InvoiceNumber.parse(value)
    except ValueError:
        return FormatError(
            f"El número de factura debe seguir el formato {FORMAT_HINT}"
        )


def is_invoice_number_format(value: str) -> bool:
    return bool(INVOICE_NUMBER_PATTERN.match(value or ""))


def compare_invoice_numbers(a: str, b: str) -> Union[Comparison, FormatError]:
    """Compare two invoice numbers group by group as integers."""
    left = parse_invoice_number(a)
    right = parse_invoice_number(b)
    if isinstance(left, FormatError) or isinstance(right, FormatError):
        return FormatError("Número de factura inválido")

    for left_group, right_group in zip(left, right):
        if left_group < right_group:
            return Comparison.LESS
        if left_group > right_group:
            return Comparison.GREATER
    return Comparison.EQUAL


def is_within_range(value: str, range_start: str, range_end: str) -> bool:
    """True when *value* lies in ``[range_start, range_end]``."""
    lower = compare_invoice_numbers(value, range_start)
    upper = compare_invoice_numbers(value, range_end)
    if isinstance(lower, FormatError) or isinstance(upper, FormatError):
        return False
    return lower is not Comparison.LESS and upper is not Comparison.GREATER


def is_invoice_number_valid(value: str, range_end: str) -> bool:
    """Check *value* against the upper bound only.

    Groups are checked from the most significant one; a smaller group
    accepts the number regardless of the groups that follow it.
    """
    candidate = parse_invoice_number(value)
    limit = parse_invoice_number(range_end)
    if isinstance(candidate, FormatError) or isinstance(limit, FormatError):
        return False

    for group, limit_group in zip(candidate, limit):
        if group < limit_group:
            return True
        if group > limit_group:
            return False
    return True


def next_invoice_number(previous: Union[str, InvoiceNumber]) -> str:
    """Advance the correlative of *previous* by one.

    Raises ``ValueError`` when *previous* is malformed and
    :class:`InvoiceNumberExhaustedError` when the correlative is already at
    ``99999999``; the correlative never carries into the document type.
    """
    number = previous if isinstance(previous, InvoiceNumber) else InvoiceNumber.parse(previous)
    if number.correlative >= MAX_CORRELATIVE:
        raise InvoiceNumberExhaustedError(
            f"El correlativo de {number.format()} está agotado; registre un nuevo CAI"
        )
    return number._replace(correlative=number.correlative + 1).format()


def validate_next_invoice_number(
    previous: str,
    next_number: str,
    range_end: str,
    last_invoice_exists: bool,
) -> ValidationResult:
    """Validate *next_number* against the previous number and the range end."""
    for field, value, label in (
        ("previous", previous, "anterior"),
        ("next", next_number, "siguiente"),
        ("range_end", range_end, "final del rango"),
    ):
        if not is_invoice_number_format(value):
            return FormatError(
                f"El número de factura {label} debe seguir el formato {FORMAT_HINT}",
                field=field,
            )

    if not is_invoice_number_valid(next_number, range_end):
        return OutOfRangeError(
            f"El número de factura excede el rango autorizado ({range_end})",
            range_end=range_end,
        )

    # Without an issued invoice, *previous* is only the start of the range,
    # which validate_against_active_authorization already enforces.
    if not last_invoice_exists:
        return True

    order = compare_invoice_numbers(next_number, previous)
    if order is Comparison.LESS:
        return SequenceError(
            "El número de factura siguiente no puede ser menor que el anterior"
        )
    if order is Comparison.EQUAL:
        return SequenceError(
            "El número de factura siguiente debe ser mayor que el anterior"
        )
    return True


def validate_against_active_authorization(
    previous: str,
    next_number: str,
    authorization: Optional[RangeAuthorization],
    last_invoice_exists: bool,
    today: Optional[date] = None,
) -> ValidationResult:
    """Validate *next_number* against the company's active CAI."""
    if authorization is None:
        return NoAuthorizationError(
            "No hay un CAI activo. Registre un CAI para poder facturar."
        )

    today = today or date.today()
    if today > authorization.expiration_date:
        return ExpiredAuthorizationError(
            f"El CAI venció el {authorization.expiration_date.isoformat()}. "
            "Registre un nuevo CAI.",
            expiration_date=authorization.expiration_date,
        )

    if not is_within_range(next_number, authorization.range_start, authorization.range_end):
        return OutOfRangeError(
            "El número de factura está fuera del rango autorizado "
            f"({authorization.range_start} a {authorization.range_end})",
            range_start=authorization.range_start,
            range_end=authorization.range_end,
        )

    return validate_next_invoice_number(
        previous, next_number, authorization.range_end, last_invoice_exists
    )


def validate_authorization_range(range_start: str, range_end: str) -> ValidationResult:
    """Check the bounds of a CAI before it is registered."""
    if not is_invoice_number_format(range_start):
        return FormatError(
            f"El inicio del rango debe seguir el formato {FORMAT_HINT}",
            field="range_invoice1",
        )
    if not is_invoice_number_format(range_end):
        return FormatError(
            f"El final del rango debe seguir el formato {FORMAT_HINT}",
            field="range_invoice2",
        )
    if compare_invoice_numbers(range_start, range_end) is Comparison.GREATER:
        return OutOfRangeError(
            "El inicio del rango no puede ser mayor que el final",
            range_start=range_start,
            range_end=range_end,
        )
    return True


def is_valid_cai(value: str) -> bool:
    return bool(CAI_PATTERN.match(value or ""))


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------
def line_total(item) -> float:
    return item.quantity * item.unit_cost - item.discount


def compute_totals(line_items: Iterable, is_exempt: bool) -> TaxBreakdown:
    """Subtotal, ISV and total for a draft invoice.

    ISV is 15% of the whole subtotal, computed once. Exempt invoices carry
    the subtotal in the ``tax_exento`` bucket and no tax.
    """
    subtotal = sum((line_total(item) for item in line_items), 0.0)
    tax = 0.0 if is_exempt else subtotal * ISV_RATE
    return TaxBreakdown(
        subtotal=subtotal,
        tax_exonerado=0.0,
        tax_exento=subtotal if is_exempt else 0.0,
        tax_gravado_15=0.0 if is_exempt else subtotal,
        tax_gravado_18=0.0,
        tax=tax,
        tax_18=0.0,
        total=subtotal + tax,
    )


def should_disable_invoice_generation(is_proforma: bool, line_items, customer) -> bool:
    """True when the draft is incomplete and must not be submitted.

    *customer* may be a mapping or an object with ``name`` and ``rtn``.
    """
    items = list(line_items or [])
    if not items:
        return True
    if any(not (item.description or "").strip() for item in items):
        return True

    if isinstance(customer, dict):
        name, rtn = customer.get("name"), customer.get("rtn")
    else:
        name, rtn = getattr(customer, "name", None), getattr(customer, "rtn", None)

    if not (name or "").strip():
        return True
    if not is_proforma and not (rtn or "").strip():
        return True
    return False


# ---------------------------------------------------------------------------
# CAI expiration
# ---------------------------------------------------------------------------
class ExpirationNotice(NamedTuple):
    days_left: int
    severity: str
    title: str
    message: str

    def as_dict(self) -> dict:
        return self._asdict()


def cai_expiration_notice(
    expiration_date: date,
    today: Optional[date] = None,
    warning_days: int = 30,
) -> Optional[ExpirationNotice]:
    """Notice to show while a CAI approaches its deadline, or None."""
    today = today or date.today()
    days_left = (expiration_date - today).days
    if days_left > warning_days:
        return None

    if days_left <= 1:
        return ExpirationNotice(
            days_left,
            "expired",
            "CAI Vencido",
            "Su CAI está vencido. Por favor, actualice su CAI.",
        )
    if days_left <= 7:
        severity, advice = "critical", "¡Actualice su CAI inmediatamente!"
    elif days_left <= 15:
        severity, advice = "warning", "Por favor, gestione un nuevo CAI pronto."
    else:
        severity, advice = "info", "Por favor, gestione un nuevo CAI pronto."
    return ExpirationNotice(
        days_left,
        severity,
        "CAI Vence pronto",
        f"Su CAI actual vencerá en {days_left} días. {advice}",
    )
