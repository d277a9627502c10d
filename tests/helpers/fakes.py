"""Thread-safe in-memory unit of work and repositories for domain tests.

Each unit of work keeps its own identity map and pending writes. ``commit``
applies them atomically under the database lock, comparing versions the way the
SQLAlchemy adapter does and refusing a second current row per key.
"""

from __future__ import annotations

import threading
from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal

from caseflow.domain.errors import ConcurrentModificationError
from caseflow.domain.model import (
    CaseEntity,
    Conflict,
    ConflictState,
    EntityKind,
    FieldAuditEvent,
    FieldValue,
    MirroredField,
    StageAssignment,
)
from caseflow.domain.ports import CaseRepositories

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from types import TracebackType
    from uuid import UUID

type TableName = Literal["entities", "field_values", "conflicts", "stages", "mirrors"]

TABLES: tuple[TableName, ...] = ("entities", "field_values", "conflicts", "stages", "mirrors")


@dataclass
class InMemoryDatabase:
    lock: threading.Lock = field(default_factory=threading.Lock)
    tables: dict[TableName, dict[Any, Any]] = field(
        default_factory=lambda: {name: {} for name in TABLES}
    )
    audit: list[FieldAuditEvent] = field(default_factory=list)
    commits: int = 0
    conflicts_detected: int = 0

    def snapshot(self, table: TableName) -> list[Any]:
        with self.lock:
            return [replace(row) for row in self.tables[table].values()]


class _Session:
    def __init__(self, database: InMemoryDatabase) -> None:
        self.database = database
        self.identity: dict[TableName, dict[Any, Any]] = defaultdict(dict)
        self.pending: dict[TableName, dict[Any, Any]] = defaultdict(dict)
        self.pending_audit: list[FieldAuditEvent] = []

    def rows(self, table: TableName) -> Iterator[Any]:
        with self.database.lock:
            committed = dict(self.database.tables[table])
        keys = list(committed)
        keys.extend(key for key in self.pending[table] if key not in committed)
        for key in keys:
            yield self._resolve(table, key, committed.get(key))

    def get(self, table: TableName, key: object) -> Any | None:
        with self.database.lock:
            committed = self.database.tables[table].get(key)
        if committed is None and key not in self.pending[table]:
            return None
        return self._resolve(table, key, committed)

    def _resolve(self, table: TableName, key: object, committed: Any | None) -> Any:
        if key in self.pending[table]:
            return self.pending[table][key]
        known = self.identity[table].get(key)
        if known is None:
            known = replace(committed)
            self.identity[table][key] = known
        return known

    def stage(self, table: TableName, key: object, row: object) -> None:
        self.pending[table][key] = row

    def commit(self) -> None:
        database = self.database
        with database.lock:
            merged = {name: dict(database.tables[name]) for name in TABLES}
            bumped: list[tuple[Any, int]] = []
            for table, rows in self.pending.items():
                for key, row in rows.items():
                    existing = merged[table].get(key)
                    stored = replace(row)
                    if hasattr(row, "version"):
                        if existing is not None and existing.version != row.version:
                            database.conflicts_detected += 1
                            raise ConcurrentModificationError(
                                f"{table} row {key} changed since it was read"
                            )
                        stored.version = row.version + 1
                        bumped.append((row, stored.version))
                    merged[table][key] = stored
            self._check_single_current(merged)
            database.tables.update(merged)
            database.audit.extend(replace(event) for event in self.pending_audit)
            database.commits += 1
        for row, version in bumped:
            row.version = version
        self.pending.clear()
        self.pending_audit.clear()
        self.identity.clear()

    def _check_single_current(self, merged: dict[TableName, dict[Any, Any]]) -> None:
        value_keys = Counter(
            (row.entity_id, row.field_name)
            for row in merged["field_values"].values()
            if row.is_current
        )
        stage_keys = Counter(
            (row.entity_id, row.workflow) for row in merged["stages"].values() if row.is_current
        )
        duplicates = [key for key, count in (value_keys + stage_keys).items() if count > 1]
        if duplicates:
            self.database.conflicts_detected += 1
            raise ConcurrentModificationError(f"Second current row for {duplicates[0]}")

    def rollback(self) -> None:
        self.pending.clear()
        self.pending_audit.clear()
        self.identity.clear()


class _Repository:
    table: TableName

    def __init__(self, session: _Session) -> None:
        self.session = session

    def add(self, entity: Any) -> None:
        self.session.stage(self.table, entity.id, entity)

    def update(self, entity: Any) -> None:
        self.session.stage(self.table, entity.id, entity)

    def _select(self, predicate: Callable[[Any], bool]) -> list[Any]:
        return [row for row in self.session.rows(self.table) if predicate(row)]


class FakeCaseEntityRepository(_Repository):
    table = "entities"

    def get(self, entity_id: str) -> CaseEntity | None:
        return self.session.get(self.table, entity_id)

    def list_for_case(self, case_id: str) -> Sequence[CaseEntity]:
        return self._select(lambda row: row.case_id == case_id)


class FakeFieldValueRepository(_Repository):
    table = "field_values"

    def get(self, value_id: UUID) -> FieldValue | None:
        return self.session.get(self.table, value_id)

    def current(self, entity_id: str, field_name: str) -> FieldValue | None:
        rows = self._select(
            lambda row: row.entity_id == entity_id
            and row.field_name == field_name
            and row.is_current
        )
        return rows[0] if rows else None

    def current_for_entity(self, entity_id: str) -> Sequence[FieldValue]:
        rows = self._select(lambda row: row.entity_id == entity_id and row.is_current)
        return sorted(rows, key=lambda row: row.field_name)

    def history(self, entity_id: str, field_name: str) -> Sequence[FieldValue]:
        rows = self._select(
            lambda row: row.entity_id == entity_id and row.field_name == field_name
        )
        return sorted(rows, key=lambda row: (row.recorded_at, row.is_current))


class FakeConflictRepository(_Repository):
    table = "conflicts"

    def get(self, conflict_id: UUID) -> Conflict | None:
        return self.session.get(self.table, conflict_id)

    def open_for_field(self, entity_id: str, field_name: str) -> Sequence[Conflict]:
        rows = self._select(
            lambda row: row.entity_id == entity_id
            and row.field_name == field_name
            and row.state is ConflictState.OPEN
        )
        return sorted(rows, key=lambda row: row.created_at)

    def list_open(
        self,
        *,
        entity_id: str | None = None,
        case_id: str | None = None,
        min_confidence: float | None = None,
    ) -> Sequence[Conflict]:
        def matches(row: Conflict) -> bool:
            if row.state is not ConflictState.OPEN:
                return False
            if entity_id is not None and row.entity_id != entity_id:
                return False
            if case_id is not None and row.case_id != case_id:
                return False
            if min_confidence is not None:
                confidence = row.candidate_confidence
                return confidence is not None and confidence >= min_confidence
            return True

        return sorted(self._select(matches), key=lambda row: row.created_at)


class FakeFieldAuditRepository:
    def __init__(self, session: _Session) -> None:
        self.session = session

    def add(self, entity: FieldAuditEvent) -> None:
        self.session.pending_audit.append(entity)

    def history(self, entity_id: str, field_name: str | None = None) -> Sequence[FieldAuditEvent]:
        with self.session.database.lock:
            events = [*self.session.database.audit]
        events.extend(self.session.pending_audit)
        return [
            replace(event)
            for event in events
            if event.entity_id == entity_id
            and (field_name is None or event.field_name == field_name)
        ]


class FakeStageAssignmentRepository(_Repository):
    table = "stages"

    def current(self, entity_id: str, workflow: str) -> StageAssignment | None:
        rows = self._select(
            lambda row: row.entity_id == entity_id and row.workflow == workflow and row.is_current
        )
        return rows[0] if rows else None

    def current_for_entity(self, entity_id: str) -> Sequence[StageAssignment]:
        rows = self._select(lambda row: row.entity_id == entity_id and row.is_current)
        return sorted(rows, key=lambda row: row.workflow)

    def history(self, entity_id: str, workflow: str) -> Sequence[StageAssignment]:
        rows = self._select(lambda row: row.entity_id == entity_id and row.workflow == workflow)
        return sorted(rows, key=lambda row: (row.assigned_at, row.is_current))

    def count_current(self, workflow: str, *, case_id: str | None = None) -> dict[str, int]:
        live = {
            entity.id
            for entity in self.session.rows("entities")
            if not entity.is_deleted
        }
        counts: Counter[str] = Counter(
            row.stage
            for row in self.session.rows(self.table)
            if row.workflow == workflow
            and row.is_current
            and row.entity_id in live
            and (case_id is None or row.case_id == case_id)
        )
        return dict(counts)


class FakeMirroredFieldRepository(_Repository):
    table = "mirrors"

    def get(self, table: str, entity_id: str, field_name: str) -> MirroredField | None:
        rows = self._select(
            lambda row: row.table == table
            and row.entity_id == entity_id
            and row.field_name == field_name
        )
        return rows[0] if rows else None

    def list_for_entity(self, table: str, entity_id: str) -> Sequence[MirroredField]:
        rows = self._select(lambda row: row.table == table and row.entity_id == entity_id)
        return sorted(rows, key=lambda row: row.field_name)


class FakeUnitOfWork:
    def __init__(self, database: InMemoryDatabase) -> None:
        self.database = database
        self._session: _Session | None = None
        self._repositories: CaseRepositories | None = None
        self.committed = False
        self.rolled_back = False

    @property
    def repositories(self) -> CaseRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work is not active")
        return self._repositories

    def __enter__(self) -> FakeUnitOfWork:
        session = _Session(self.database)
        self._session = session
        self._repositories = CaseRepositories(
            entities=FakeCaseEntityRepository(session),
            field_values=FakeFieldValueRepository(session),
            conflicts=FakeConflictRepository(session),
            audit=FakeFieldAuditRepository(session),
            stages=FakeStageAssignmentRepository(session),
            mirrors=FakeMirroredFieldRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool:
        self.rollback()
        self._session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("Unit of work is not active")
        self._session.commit()
        self.committed = True

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()
        self.rolled_back = True


def fake_uow_factory(database: InMemoryDatabase) -> Callable[[], FakeUnitOfWork]:
    def factory() -> FakeUnitOfWork:
        return FakeUnitOfWork(database)

    return factory


def seed_entity(
    database: InMemoryDatabase,
    entity_id: str,
    *,
    kind: EntityKind = EntityKind.CASE,
    case_id: str | None = None,
    deleted: bool = False,
) -> CaseEntity:
    entity = CaseEntity(
        id=entity_id,
        kind=kind,
        case_id=case_id or entity_id,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
        deleted_at=datetime(2024, 6, 1, tzinfo=UTC) if deleted else None,
    )
    with database.lock:
        database.tables["entities"][entity.id] = replace(entity)
    return entity


class ManualClock:
    """Deterministic clock; every call advances by ``step_seconds``."""

    def __init__(self, start: datetime | None = None, *, step_seconds: float = 1.0) -> None:
        self._now = start or datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
        self._step = step_seconds
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            current = self._now
            self._now = current + timedelta(seconds=self._step)
        return current
