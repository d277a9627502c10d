from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from caseflow.adapters.sqlalchemy import start_mappers
from caseflow.adapters.sqlalchemy.migrations import upgrade_head
from caseflow.adapters.sqlalchemy.unit_of_work import SqlAlchemyCaseUnitOfWork, shutdown, startup
from caseflow.domain.engine import CaseflowEngine, assemble_engine
from caseflow.domain.model import EntityKind
from caseflow.domain.progression import StageRegistry, load_workflows
from caseflow.domain.sync import SyncLinkRegistry, load_sync_links
from tests.helpers.fakes import (
    FakeUnitOfWork,
    InMemoryDatabase,
    ManualClock,
    fake_uow_factory,
    seed_entity,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture(scope="session")
def registry() -> StageRegistry:
    return load_workflows()


@pytest.fixture(scope="session")
def links() -> SyncLinkRegistry:
    return load_sync_links()


@pytest.fixture
def database() -> InMemoryDatabase:
    database = InMemoryDatabase()
    seed_entity(database, "case-1")
    seed_entity(database, "case-2")
    seed_entity(database, "member-1", kind=EntityKind.FAMILY_MEMBER, case_id="case-1")
    return database


@pytest.fixture
def uow_factory(database: InMemoryDatabase) -> Callable[[], FakeUnitOfWork]:
    return fake_uow_factory(database)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def engine(
    uow_factory: Callable[[], FakeUnitOfWork],
    registry: StageRegistry,
    links: SyncLinkRegistry,
    clock: ManualClock,
) -> CaseflowEngine:
    return assemble_engine(
        uow_factory,
        registry=registry,
        links=links,
        node_id="node-a",
        clock=clock,
    )


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyCaseUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyCaseUnitOfWork:
        return SqlAlchemyCaseUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
