"""
Miscellaneous helper functions.
"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from bson import ObjectId
from bson.errors import InvalidId

_UNITS = [
    "", "uno", "dos", "tres", "cuatro", "cinco", "seis", "siete", "ocho",
    "nueve", "diez", "once", "doce", "trece", "catorce", "quince",
    "dieciséis", "diecisiete", "dieciocho", "diecinueve", "veinte",
    "veintiuno", "veintidós", "veintitrés", "veinticuatro", "veinticinco",
    "veintiséis", "veintisiete", "veintiocho", "veintinueve",
]
_TENS = [
    "", "", "", "treinta", "cuarenta", "cincuenta", "sesenta", "setenta",
    "ochenta", "noventa",
]
_HUNDREDS = [
    "", "ciento", "doscientos", "trescientos", "cuatrocientos", "quinientos",
    "seiscientos", "setecientos", "ochocientos", "novecientos",
]


def _below_hundred(n: int, apocope: bool) -> str:
    if n < 30:
        words = _UNITS[n]
    else:
        tens, units = divmod(n, 10)
        words = _TENS[tens] + (f" y {_UNITS[units]}" if units else "")
    # "uno" shortens before "mil" and "millones": veintiún mil, treinta y un mil
    if apocope and words.endswith("uno"):
        words = "veintiún" if words == "veintiuno" else words[:-1]
    return words


def _below_thousand(n: int, apocope: bool = False) -> str:
    if n == 100:
        return "cien"
    hundreds, rest = divmod(n, 100)
    parts = []
    if hundreds:
        parts.append(_HUNDREDS[hundreds])
    if rest:
        parts.append(_below_hundred(rest, apocope))
    return " ".join(parts)


def _below_million(n: int, apocope: bool = False) -> str:
    thousands, rest = divmod(n, 1000)
    parts = []
    if thousands == 1:
        parts.append("mil")
    elif thousands:
        parts.append(f"{_below_thousand(thousands, apocope=True)} mil")
    if rest:
        parts.append(_below_thousand(rest, apocope))
    return " ".join(parts)


def integer_to_words(n: int) -> str:
    """Spell a non-negative integer below 10**12 in Spanish."""
    if n < 0 or n >= 10 ** 12:
        raise ValueError(f"Cannot spell {n}")
    if n == 0:
        return "cero"

    millions, rest = divmod(n, 1_000_000)
    parts = []
    if millions == 1:
        parts.append("un millón")
    elif millions:
        parts.append(f"{_below_million(millions, apocope=True)} millones")
    if rest:
        parts.append(_below_million(rest))
    return " ".join(parts)


def amount_to_words(amount: float) -> str:
    """Return *amount* as printed on invoices, e.g. ``doscientos treinta con 00/100``."""
    cents_total = int(round(abs(amount) * 100))
    integer, cents = divmod(cents_total, 100)
    words = f"{integer_to_words(integer)} con {cents:02d}/100"
    return f"menos {words}" if amount < 0 and cents_total else words


def local_now(timezone: str) -> datetime:
    """Current wall-clock time in *timezone* as a naive datetime."""
    return datetime.now(ZoneInfo(timezone)).replace(tzinfo=None)


def parse_object_id(value) -> Optional[ObjectId]:
    """Return an ObjectId for *value*, or None when it is not a valid id."""
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string; raises ``ValueError`` on bad input."""
    if not value:
        return None
    return datetime.strptime(value, "%Y-%m-%d").date()
