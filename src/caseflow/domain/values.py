"""Value normalisation and equality per field kind.

Equality decides between corroboration and conflict, so it is deliberately
forgiving about presentation (case, whitespace, date notation) and strict about
content: ``WARSAW`` and ``Warszawa`` are different values.
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from caseflow.domain.model.enums import FieldKind

if TYPE_CHECKING:
    from caseflow.domain.model.fields import FieldScalar

_DATE_PATTERNS = (
    re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})$"),
    re.compile(r"^(?P<d>\d{1,2})[./-](?P<m>\d{1,2})[./-](?P<y>\d{4})$"),
)
_TRUE = frozenset({"true", "yes", "y", "tak", "t", "1"})
_FALSE = frozenset({"false", "no", "n", "nie", "f", "0"})


def normalize_text(value: object) -> str | None:
    if value is None:
        return None
    text = unicodedata.normalize("NFKC", str(value))
    text = text.casefold()
    text = " ".join(text.split())
    return text or None


def parse_date(value: object) -> date | None:
    """Parse ISO dates and the day-first notations used on civil documents."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    for pattern in _DATE_PATTERNS:
        match = pattern.match(text)
        if match is None:
            continue
        try:
            return date(int(match["y"]), int(match["m"]), int(match["d"]))
        except ValueError:
            return None
    return None


def parse_number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    text = str(value).strip().replace(" ", "").replace(",", ".")
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_boolean(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    text = normalize_text(value)
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return None


@dataclass(frozen=True, slots=True)
class ComparisonPolicy:
    """Tolerances applied when comparing two values of the same field."""

    date_tolerance_days: int = 0
    number_tolerance: float = 1e-6

    def equal(self, kind: FieldKind, left: FieldScalar, right: FieldScalar) -> bool:
        if left is None or right is None:
            return left is None and right is None
        match kind:
            case FieldKind.DATE:
                left_date, right_date = parse_date(left), parse_date(right)
                if left_date is not None and right_date is not None:
                    return abs((left_date - right_date).days) <= self.date_tolerance_days
            case FieldKind.NUMBER:
                left_number, right_number = parse_number(left), parse_number(right)
                if left_number is not None and right_number is not None:
                    return abs(left_number - right_number) <= self.number_tolerance
            case FieldKind.BOOLEAN:
                left_flag, right_flag = parse_boolean(left), parse_boolean(right)
                if left_flag is not None and right_flag is not None:
                    return left_flag == right_flag
            case FieldKind.TEXT:
                pass
        # unparseable values fall back to text comparison
        return normalize_text(left) == normalize_text(right)

    def canonical(self, kind: FieldKind, value: FieldScalar | date) -> FieldScalar:
        """Storage form of a value: ISO dates, numbers and booleans where parseable."""
        if isinstance(value, date):
            return value.isoformat()[:10]
        if value is None:
            return None
        match kind:
            case FieldKind.DATE:
                parsed = parse_date(value)
                return parsed.isoformat() if parsed is not None else value
            case FieldKind.NUMBER:
                number = parse_number(value)
                if number is None:
                    return value
                return int(number) if number.is_integer() else number
            case FieldKind.BOOLEAN:
                flag = parse_boolean(value)
                return flag if flag is not None else value
            case FieldKind.TEXT:
                return " ".join(str(value).split()) if isinstance(value, str) else value
