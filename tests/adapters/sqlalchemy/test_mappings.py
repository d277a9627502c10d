from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, inspect

from caseflow.adapters.sqlalchemy import create_all_tables, mapper_registry, start_mappers

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

TABLES = {
    "case_entity",
    "field_value",
    "conflict",
    "field_event",
    "stage_assignment",
    "mirrored_field",
}


def test_migrations_create_every_mapped_table(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert tables >= TABLES
    assert set(mapper_registry.metadata.tables) == TABLES


def test_migrated_columns_match_the_mappings(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    for name, table in mapper_registry.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name


def test_current_rows_are_unique_per_key(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    unique_indexes = {
        index["name"]: index["column_names"]
        for table in ("field_value", "stage_assignment")
        for index in inspector.get_indexes(table)
        if index["unique"]
    }

    assert unique_indexes == {
        "uq_field_value_current": ["entity_id", "field_name"],
        "uq_stage_assignment_current": ["entity_id", "workflow"],
    }


def test_create_all_tables_matches_migrations() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()

    create_all_tables(engine)

    assert set(inspect(engine).get_table_names()) == TABLES
    engine.dispose()
