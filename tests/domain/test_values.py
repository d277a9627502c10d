from __future__ import annotations

from datetime import date, datetime

import pytest

from caseflow.domain.model import FieldKind
from caseflow.domain.values import (
    ComparisonPolicy,
    normalize_text,
    parse_boolean,
    parse_date,
    parse_number,
)


def test_normalize_text() -> None:
    assert normalize_text("  Nowa   Huta ") == "nowa huta"
    assert normalize_text("ＷＡＲＳＡＷ") == "warsaw"
    assert normalize_text("   ") is None
    assert normalize_text(None) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1990-05-01", date(1990, 5, 1)),
        ("01.05.1990", date(1990, 5, 1)),
        ("1/5/1990", date(1990, 5, 1)),
        ("1990-05-01T10:00:00Z", date(1990, 5, 1)),
        (datetime(1990, 5, 1, 23, 59), date(1990, 5, 1)),
        ("31.02.1990", None),
        ("May 1990", None),
    ],
)
def test_parse_date(raw: object, expected: date | None) -> None:
    assert parse_date(raw) == expected


def test_parse_number_and_boolean() -> None:
    assert parse_number("2,5") == 2.5
    assert parse_number("1 200") == 1200.0
    assert parse_number(True) is None
    assert parse_number("nan") is None
    assert parse_boolean("TAK") is True
    assert parse_boolean("nie") is False
    assert parse_boolean("maybe") is None


def test_text_equality_ignores_case_and_spacing_only() -> None:
    policy = ComparisonPolicy()

    assert policy.equal(FieldKind.TEXT, "WARSAW", "  warsaw")
    assert not policy.equal(FieldKind.TEXT, "WARSAW", "Warszawa")
    assert policy.equal(FieldKind.TEXT, None, None)
    assert not policy.equal(FieldKind.TEXT, None, "")


def test_date_tolerance() -> None:
    strict = ComparisonPolicy()
    lenient = ComparisonPolicy(date_tolerance_days=1)

    assert strict.equal(FieldKind.DATE, "1990-05-01", "01.05.1990")
    assert not strict.equal(FieldKind.DATE, "1990-05-01", "1990-05-02")
    assert lenient.equal(FieldKind.DATE, "1990-05-01", "1990-05-02")


def test_unparseable_values_fall_back_to_text() -> None:
    policy = ComparisonPolicy()

    assert policy.equal(FieldKind.DATE, "unknown", "UNKNOWN")
    assert not policy.equal(FieldKind.NUMBER, "two", "2")


def test_canonical_forms() -> None:
    policy = ComparisonPolicy()

    assert policy.canonical(FieldKind.DATE, "01.05.1990") == "1990-05-01"
    assert policy.canonical(FieldKind.DATE, date(1990, 5, 1)) == "1990-05-01"
    assert policy.canonical(FieldKind.NUMBER, "2,0") == 2
    assert policy.canonical(FieldKind.NUMBER, "2,5") == 2.5
    assert policy.canonical(FieldKind.BOOLEAN, "yes") is True
    assert policy.canonical(FieldKind.TEXT, "  Nowa   Huta ") == "Nowa Huta"
    assert policy.canonical(FieldKind.TEXT, None) is None
