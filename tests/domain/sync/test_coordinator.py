from __future__ import annotations

import random
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from caseflow.adapters.realtime import InMemoryChangeBus
from caseflow.domain.engine import assemble_engine
from caseflow.domain.errors import SyncLinkMissingError
from caseflow.domain.model import AuditEventKind, Candidate, ChangeEvent, ValueSource
from tests.helpers.fakes import InMemoryDatabase, ManualClock, fake_uow_factory, seed_entity

if TYPE_CHECKING:
    from caseflow.domain.engine import CaseflowEngine
    from caseflow.domain.progression import StageRegistry
    from caseflow.domain.sync import SyncLinkRegistry

T0 = datetime(2025, 4, 1, 8, 0, tzinfo=UTC)


def _node(
    node_id: str,
    registry: StageRegistry,
    links: SyncLinkRegistry,
    bus: InMemoryChangeBus | None = None,
) -> CaseflowEngine:
    database = InMemoryDatabase()
    seed_entity(database, "case-1")
    return assemble_engine(
        fake_uow_factory(database),
        registry=registry,
        links=links,
        node_id=node_id,
        notifier=bus,
        clock=ManualClock(),
    )


def _intake(engine: CaseflowEngine, field_name: str) -> object:
    stored = engine.sync.target("intake_data", field_name).read("case-1", field_name)
    return None if stored is None else stored[0]


def test_master_change_reaches_intake_form(engine: CaseflowEngine) -> None:
    engine.evaluate(
        "case-1",
        "applicant_first_name",
        Candidate(value="Zofia", source=ValueSource.MANUAL, actor="agent"),
    )

    assert _intake(engine, "first_name") == "Zofia"


def test_intake_change_is_normalised_into_master(engine: CaseflowEngine) -> None:
    result = engine.sync.record("intake_data", "case-1", "sex", "kobieta", actor="client")

    assert result.accepted
    assert [(str(write.target), write.value) for write in result.applied] == [
        ("master_table.applicant_sex", "F")
    ]
    assert _intake(engine, "sex") == "kobieta"
    current = engine.store.current("case-1", "applicant_sex")
    assert current is not None
    assert current.value == "F"
    assert current.source is ValueSource.MANUAL
    kinds = [event.kind for event in engine.export_field_history("case-1", "applicant_sex")]
    assert kinds == [AuditEventKind.SYNCED]


def test_unrecognised_sex_is_kept_in_master(engine: CaseflowEngine) -> None:
    engine.sync.record("intake_data", "case-1", "sex", "kobieta", timestamp=T0, actor="client")

    result = engine.sync.record(
        "intake_data", "case-1", "sex", " Inna ", timestamp=T0 + timedelta(hours=1), actor="client"
    )

    assert result.accepted
    assert [write.value for write in result.applied] == [" Inna "]
    current = engine.store.current("case-1", "applicant_sex")
    assert current is not None
    assert current.value == "Inna"
    assert [value.value for value in engine.store.history("case-1", "applicant_sex")] == ["F", "Inna"]


def test_passport_number_is_upper_cased(engine: CaseflowEngine) -> None:
    engine.sync.record("intake_data", "case-1", "passport_number", "ab1234567", actor="client")

    current = engine.store.current("case-1", "applicant_passport_number")
    assert current is not None
    assert current.value == "AB1234567"


def test_out_of_order_local_write_is_rejected(engine: CaseflowEngine) -> None:
    engine.sync.record(
        "intake_data", "case-1", "email", "new@example.com", timestamp=T0 + timedelta(hours=1)
    )

    result = engine.sync.record("intake_data", "case-1", "email", "old@example.com", timestamp=T0)

    assert result.accepted is False
    assert result.writes == ()
    assert _intake(engine, "email") == "new@example.com"
    current = engine.store.current("case-1", "applicant_email")
    assert current is not None
    assert current.value == "new@example.com"


def test_own_changes_coming_back_are_ignored(engine: CaseflowEngine) -> None:
    change = ChangeEvent(
        entity_id="case-1",
        table="intake_data",
        field="first_name",
        value="Echo",
        timestamp=T0,
        origin="node-a",
    )

    result = engine.sync.handle_remote(change)

    assert result.accepted is False
    assert _intake(engine, "first_name") is None


def test_derived_changes_are_not_propagated(engine: CaseflowEngine) -> None:
    change = ChangeEvent(
        entity_id="case-1",
        table="master_table",
        field="applicant_last_name",
        value="Nowak",
        timestamp=T0,
        origin="node-b",
        derived_from=uuid.uuid4(),
    )

    result = engine.propagate(change)

    assert result.writes == ()
    assert _intake(engine, "last_name") is None


def test_unlinked_field_cannot_be_propagated(engine: CaseflowEngine) -> None:
    change = ChangeEvent(
        entity_id="case-1",
        table="master_table",
        field="children_count",
        value=3,
        timestamp=T0,
        origin="node-a",
    )

    with pytest.raises(SyncLinkMissingError):
        engine.propagate(change)


def test_nodes_converge_whatever_the_delivery_order(
    registry: StageRegistry, links: SyncLinkRegistry
) -> None:
    changes = [
        ChangeEvent(
            entity_id="case-1",
            table="intake_data" if index % 2 else "master_table",
            field="last_name" if index % 2 else "applicant_last_name",
            value=f"Surname {index}",
            timestamp=T0 + timedelta(minutes=index),
            origin="node-c",
        )
        for index in range(8)
    ]
    in_order = _node("node-a", registry, links)
    shuffled = _node("node-b", registry, links)
    reordered = list(changes)
    random.Random(7).shuffle(reordered)

    for change in changes:
        in_order.sync.handle_remote(change)
    for change in reordered:
        shuffled.sync.handle_remote(change)

    for node in (in_order, shuffled):
        current = node.store.current("case-1", "applicant_last_name")
        assert current is not None
        assert current.value == "Surname 7"
        assert _intake(node, "last_name") == "Surname 7"


def test_changes_travel_between_nodes_over_the_bus(
    registry: StageRegistry, links: SyncLinkRegistry
) -> None:
    bus = InMemoryChangeBus()
    node_a = _node("node-a", registry, links, bus)
    node_b = _node("node-b", registry, links, bus)
    node_a.sync.listen()
    node_b.sync.listen()

    node_a.evaluate(
        "case-1",
        "applicant_pob",
        Candidate(value="Gdańsk", source=ValueSource.MANUAL, actor="agent"),
    )
    node_b.sync.record(
        "intake_data",
        "case-1",
        "phone",
        " +48 600 000 000 ",
        timestamp=T0 + timedelta(days=30),
        actor="client",
    )

    for node in (node_a, node_b):
        assert _intake(node, "place_of_birth") == "Gdańsk"
        phone = node.store.current("case-1", "applicant_phone")
        assert phone is not None
        assert phone.value == "+48 600 000 000"
    assert [event.origin for event in bus.published] == ["node-a", "node-b"]
    assert all(not event.is_derived for event in bus.published)
