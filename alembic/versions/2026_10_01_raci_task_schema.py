"""Create task, subtask, RACI and impacted-profile tables.

Revision ID: raci_task_schema_20261001
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from alembic import op
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "raci_task_schema_20261001"
down_revision = None
branch_labels = None
depends_on = None

PHASE_CODES = ("M", "E", "D", "A", "C", "A2", "P")
RACI_LETTERS = ("R", "A", "C", "I")

PROFILE_ROWS = [
    {"code": "TEC", "name": "Technicien", "description": "Personnel technique de terrain"},
    {"code": "MAN", "name": "Manager", "description": "Responsable d'équipe"},
    {"code": "DPS", "name": "Délégué à la Protection des Sites", "description": "Responsable de la sécurité des sites"},
    {"code": "DOP", "name": "Directeur Opérationnel de Production", "description": "Responsable des opérations de production"},
    {"code": "DF", "name": "Directeur Filiale", "description": "Directeur de filiale"},
    {"code": "DG", "name": "Directeur Groupe", "description": "Directeur au niveau groupe"},
    {"code": "RH", "name": "Ressources Humaines", "description": "Personnel RH"},
    {"code": "AF", "name": "Administrateur Filiale", "description": "Administrateur au niveau filiale"},
    {"code": "SA", "name": "Super Administrateur", "description": "Administrateur système global"},
]


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    """Create the task tracking schema."""
    bind = op.get_bind()
    inspector = inspect(bind)
    tables = inspector.get_table_names()

    phase_enum = postgresql.ENUM(*PHASE_CODES, name="phase_code", create_type=False)
    letter_enum = postgresql.ENUM(*RACI_LETTERS, name="raci_letter", create_type=False)
    phase_enum.create(bind, checkfirst=True)
    letter_enum.create(bind, checkfirst=True)

    if "profiles" not in tables:
        profiles = op.create_table(
            "profiles",
            sa.Column("code", sa.String(length=8), nullable=False),
            sa.Column("name", sa.String(length=64), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.PrimaryKeyConstraint("code"),
        )
        op.bulk_insert(profiles, PROFILE_ROWS)

    if "tasks" not in tables:
        op.create_table(
            "tasks",
            sa.Column("id", sa.UUID(), nullable=False),
            sa.Column("phase_code", phase_enum, nullable=False),
            sa.Column("page_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=256), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("priority", sa.SmallInteger(), nullable=False),
            sa.Column("owner_id", sa.UUID(), nullable=True),
            sa.Column("progress", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
            sa.Column("created_by", sa.UUID(), nullable=False),
            *_timestamps(),
            sa.Column("planned_start", sa.DateTime(timezone=True), nullable=True),
            sa.Column("planned_end", sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint("priority BETWEEN 1 AND 5", name="ck_tasks_priority"),
            sa.CheckConstraint("progress BETWEEN 0 AND 100", name="ck_tasks_progress"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_tasks_id"), "tasks", ["id"], unique=False)
        op.create_index(op.f("ix_tasks_phase_code"), "tasks", ["phase_code"], unique=False)
        op.create_index(op.f("ix_tasks_page_id"), "tasks", ["page_id"], unique=False)
        op.create_index(op.f("ix_tasks_owner_id"), "tasks", ["owner_id"], unique=False)
        op.create_index(op.f("ix_tasks_created_by"), "tasks", ["created_by"], unique=False)

    if "subtasks" not in tables:
        op.create_table(
            "subtasks",
            sa.Column("id", sa.UUID(), nullable=False),
            sa.Column("task_id", sa.UUID(), nullable=False),
            sa.Column("title", sa.String(length=256), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("created_by", sa.UUID(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_subtasks_id"), "subtasks", ["id"], unique=False)
        op.create_index(op.f("ix_subtasks_task_id"), "subtasks", ["task_id"], unique=False)

    if "task_raci" not in tables:
        op.create_table(
            "task_raci",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("task_id", sa.UUID(), nullable=False),
            sa.Column("user_id", sa.UUID(), nullable=False),
            sa.Column("letter", letter_enum, nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("task_id", "user_id", name="uq_task_raci_user"),
        )
        op.create_index(op.f("ix_task_raci_task_id"), "task_raci", ["task_id"], unique=False)
        op.create_index(op.f("ix_task_raci_user_id"), "task_raci", ["user_id"], unique=False)

    if "subtask_raci" not in tables:
        op.create_table(
            "subtask_raci",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("subtask_id", sa.UUID(), nullable=False),
            sa.Column("user_id", sa.UUID(), nullable=False),
            sa.Column("letter", letter_enum, nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["subtask_id"], ["subtasks.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("subtask_id", "user_id", name="uq_subtask_raci_user"),
        )
        op.create_index(op.f("ix_subtask_raci_subtask_id"), "subtask_raci", ["subtask_id"], unique=False)
        op.create_index(op.f("ix_subtask_raci_user_id"), "subtask_raci", ["user_id"], unique=False)

    if "task_profiles" not in tables:
        op.create_table(
            "task_profiles",
            sa.Column("task_id", sa.UUID(), nullable=False),
            sa.Column("profile_code", sa.String(length=8), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["profile_code"], ["profiles.code"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("task_id", "profile_code"),
        )
        op.create_index(op.f("ix_task_profiles_profile_code"), "task_profiles", ["profile_code"], unique=False)


def downgrade() -> None:
    """Drop the task tracking schema."""
    op.drop_table("task_profiles")
    op.drop_table("subtask_raci")
    op.drop_table("task_raci")
    op.drop_table("subtasks")
    op.drop_table("tasks")
    op.drop_table("profiles")
    bind = op.get_bind()
    postgresql.ENUM(name="raci_letter").drop(bind, checkfirst=True)
    postgresql.ENUM(name="phase_code").drop(bind, checkfirst=True)
