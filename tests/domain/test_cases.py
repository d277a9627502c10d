from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from caseflow.domain.errors import EntityNotFoundError
from caseflow.domain.model import EntityKind

if TYPE_CHECKING:
    from caseflow.domain.engine import CaseflowEngine


def test_register_case_and_members(engine: CaseflowEngine) -> None:
    case = engine.cases.register_case("case-9")
    member = engine.cases.register_member("member-9", "case-9", relation="father")

    assert case.kind is EntityKind.CASE
    assert case.case_id == "case-9"
    assert member.kind is EntityKind.FAMILY_MEMBER
    assert member.case_id == "case-9"
    assert member.relation == "father"
    assert [entity.id for entity in engine.cases.members("case-9")] == ["member-9"]


def test_registering_twice_returns_the_existing_entity(engine: CaseflowEngine) -> None:
    first = engine.cases.register_case("case-9")
    again = engine.cases.register_case("case-9")

    assert again.id == first.id
    assert again.created_at == first.created_at


def test_members_need_a_live_case(engine: CaseflowEngine) -> None:
    with pytest.raises(EntityNotFoundError):
        engine.cases.register_member("member-9", "no-such-case")
    with pytest.raises(EntityNotFoundError):
        engine.cases.register_member("member-9", "member-1")


def test_retiring_a_case_retires_its_members(engine: CaseflowEngine) -> None:
    retired = engine.cases.retire("case-1")

    assert retired.is_deleted
    with pytest.raises(EntityNotFoundError):
        engine.cases.get("member-1")
    assert engine.cases.members("case-1") == []
    assert engine.cases.get("case-2").id == "case-2"
    with pytest.raises(EntityNotFoundError):
        engine.cases.retire("case-1")
    with pytest.raises(EntityNotFoundError):
        engine.cases.register_case("case-1")
