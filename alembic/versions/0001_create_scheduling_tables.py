"""create scheduling tables

Revision ID: 0001_create_scheduling_tables
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_create_scheduling_tables"
down_revision = None
branch_labels = None
depends_on = None

NO_OVERLAP_CONSTRAINT = "tutoring_sessions_no_overlap_per_tutor"


def upgrade() -> None:
    op.create_table(
        "tutors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
    )
    op.create_index("ix_tutors_id", "tutors", ["id"])

    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
    )
    op.create_index("ix_students_id", "students", ["id"])

    op.create_table(
        "tutoring_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tutor_id", sa.Integer(), sa.ForeignKey("tutors.id"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("scheduled_start", sa.DateTime(), nullable=False),
        sa.Column("scheduled_end", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("location", sa.String(length=255)),
        sa.Column("notes", sa.String(length=1000)),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.CheckConstraint("scheduled_end > scheduled_start", name="ck_tutoring_sessions_window"),
    )
    op.create_index("ix_tutoring_sessions_id", "tutoring_sessions", ["id"])
    op.create_index("ix_tutoring_sessions_tutor_id", "tutoring_sessions", ["tutor_id"])
    op.create_index("ix_tutoring_sessions_student_id", "tutoring_sessions", ["student_id"])
    op.create_index("ix_tutoring_sessions_scheduled_start", "tutoring_sessions", ["scheduled_start"])
    op.create_index("ix_tutoring_sessions_status", "tutoring_sessions", ["status"])

    # Database-level guard against double booking across processes.
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            f"""
            ALTER TABLE tutoring_sessions
            ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT}
            EXCLUDE USING gist (
                tutor_id WITH =,
                tsrange(scheduled_start, scheduled_end, '[)') WITH &&
            )
            WHERE (status IN ('SCHEDULED', 'CONFIRMED'))
            """
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute(f"ALTER TABLE tutoring_sessions DROP CONSTRAINT IF EXISTS {NO_OVERLAP_CONSTRAINT}")
    op.drop_index("ix_tutoring_sessions_status", table_name="tutoring_sessions")
    op.drop_index("ix_tutoring_sessions_scheduled_start", table_name="tutoring_sessions")
    op.drop_index("ix_tutoring_sessions_student_id", table_name="tutoring_sessions")
    op.drop_index("ix_tutoring_sessions_tutor_id", table_name="tutoring_sessions")
    op.drop_index("ix_tutoring_sessions_id", table_name="tutoring_sessions")
    op.drop_table("tutoring_sessions")
    op.drop_index("ix_students_id", table_name="students")
    op.drop_table("students")
    op.drop_index("ix_tutors_id", table_name="tutors")
    op.drop_table("tutors")
