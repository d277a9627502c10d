"""Initial case, field and stage tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-28 10:12:41.118203
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _moment(name: str, *, nullable: bool) -> sa.Column[object]:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "case_entity",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("case_id", sa.String(64), nullable=False),
        sa.Column("relation", sa.String(), nullable=True),
        _moment("created_at", nullable=False),
        _moment("deleted_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_case_entity"),
    )
    op.create_index("ix_case_entity_case_id", "case_entity", ["case_id"])

    op.create_table(
        "field_value",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("field_name", sa.String(128), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("document_id", sa.String(), nullable=True),
        _moment("recorded_at", nullable=False),
        sa.Column("recorded_by", sa.String(), nullable=True),
        _moment("updated_at", nullable=False),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        _moment("superseded_at", nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["entity_id"], ["case_entity.id"], name="fk_field_value_entity_id_case_entity"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_field_value"),
    )
    op.create_index("ix_field_value_key", "field_value", ["entity_id", "field_name"])
    op.create_index(
        "uq_field_value_current",
        "field_value",
        ["entity_id", "field_name"],
        unique=True,
        sqlite_where=sa.text("is_current = 1"),
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "conflict",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("case_id", sa.String(64), nullable=False),
        sa.Column("field_name", sa.String(128), nullable=False),
        sa.Column("current_value_id", sa.Uuid(), nullable=False),
        sa.Column("candidate_value", sa.Text(), nullable=True),
        sa.Column("candidate_source", sa.String(32), nullable=False),
        sa.Column("candidate_confidence", sa.Float(), nullable=True),
        sa.Column("candidate_document_id", sa.String(), nullable=True),
        _moment("candidate_observed_at", nullable=True),
        sa.Column("state", sa.String(32), nullable=False),
        sa.Column("decision", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _moment("created_at", nullable=False),
        sa.Column("detected_by", sa.String(), nullable=True),
        _moment("resolved_at", nullable=True),
        sa.Column("resolved_by", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["entity_id"], ["case_entity.id"], name="fk_conflict_entity_id_case_entity"
        ),
        sa.ForeignKeyConstraint(
            ["current_value_id"],
            ["field_value.id"],
            name="fk_conflict_current_value_id_field_value",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_conflict"),
    )
    op.create_index("ix_conflict_field", "conflict", ["entity_id", "field_name", "state"])
    op.create_index("ix_conflict_case_state", "conflict", ["case_id", "state"])

    op.create_table(
        "field_event",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("field_name", sa.String(128), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("source", sa.String(32), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("document_id", sa.String(), nullable=True),
        sa.Column("field_value_id", sa.Uuid(), nullable=True),
        sa.Column("conflict_id", sa.Uuid(), nullable=True),
        sa.Column("actor", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _moment("occurred_at", nullable=False),
        sa.PrimaryKeyConstraint("seq", name="pk_field_event"),
        sa.UniqueConstraint("id", name="uq_field_event_id"),
    )
    op.create_index("ix_field_event_key", "field_event", ["entity_id", "field_name"])

    op.create_table(
        "stage_assignment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("case_id", sa.String(64), nullable=False),
        sa.Column("workflow", sa.String(64), nullable=False),
        sa.Column("stage", sa.String(64), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        _moment("assigned_at", nullable=False),
        sa.Column("assigned_by", sa.String(), nullable=True),
        sa.Column("previous_stage", sa.String(64), nullable=True),
        sa.Column("reverted", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["entity_id"], ["case_entity.id"], name="fk_stage_assignment_entity_id_case_entity"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_stage_assignment"),
    )
    op.create_index("ix_stage_assignment_key", "stage_assignment", ["entity_id", "workflow"])
    op.create_index(
        "ix_stage_assignment_workflow_stage", "stage_assignment", ["workflow", "stage"]
    )
    op.create_index(
        "uq_stage_assignment_current",
        "stage_assignment",
        ["entity_id", "workflow"],
        unique=True,
        sqlite_where=sa.text("is_current = 1"),
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "mirrored_field",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("table_name", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("field_name", sa.String(128), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        _moment("updated_at", nullable=False),
        sa.Column("origin", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["entity_id"], ["case_entity.id"], name="fk_mirrored_field_entity_id_case_entity"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_mirrored_field"),
        sa.UniqueConstraint(
            "table_name", "entity_id", "field_name", name="uq_mirrored_field_key"
        ),
    )


def downgrade() -> None:
    op.drop_table("mirrored_field")
    op.drop_index("uq_stage_assignment_current", table_name="stage_assignment")
    op.drop_index("ix_stage_assignment_workflow_stage", table_name="stage_assignment")
    op.drop_index("ix_stage_assignment_key", table_name="stage_assignment")
    op.drop_table("stage_assignment")
    op.drop_index("ix_field_event_key", table_name="field_event")
    op.drop_table("field_event")
    op.drop_index("ix_conflict_case_state", table_name="conflict")
    op.drop_index("ix_conflict_field", table_name="conflict")
    op.drop_table("conflict")
    op.drop_index("uq_field_value_current", table_name="field_value")
    op.drop_index("ix_field_value_key", table_name="field_value")
    op.drop_table("field_value")
    op.drop_index("ix_case_entity_case_id", table_name="case_entity")
    op.drop_table("case_entity")
