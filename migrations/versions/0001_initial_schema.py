"""initial StudyLinker schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
Money = sa.Numeric(10, 2)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
    ]


def _fk(name: str, target: str, *, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(name, sa.String(36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    """Create every StudyLinker table (idempotent on partially-initialized databases)."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "accounts" not in existing_tables:
        op.create_table(
            "accounts",
            _id(),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            _id(),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_profile_id", sa.String(36), nullable=True),
            sa.Column("actor_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
        )

    if "user_profiles" not in existing_tables:
        op.create_table(
            "user_profiles",
            _id(),
            sa.Column("auth_id", sa.String(64), nullable=False, unique=True),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("first_name", sa.String(128), nullable=True),
            sa.Column("last_name", sa.String(128), nullable=True),
            sa.Column("avatar", sa.String(1024), nullable=True),
            sa.Column("role", sa.String(16), nullable=False, server_default="PARENT"),
            *_timestamps(),
        )
        op.create_index("idx_user_profiles_role", "user_profiles", ["role"])

    if "parent_profiles" not in existing_tables:
        op.create_table(
            "parent_profiles",
            _id(),
            sa.Column(
                "user_id",
                sa.String(36),
                sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
                nullable=False,
                unique=True,
            ),
            *_timestamps(),
        )

    if "teacher_profiles" not in existing_tables:
        op.create_table(
            "teacher_profiles",
            _id(),
            sa.Column(
                "user_id",
                sa.String(36),
                sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
                nullable=False,
                unique=True,
            ),
            sa.Column("bio", sa.Text(), nullable=True),
            sa.Column("location", sa.String(255), nullable=True),
            sa.Column("timezone", sa.String(64), nullable=True),
            sa.Column("languages", JSONType, nullable=True),
            sa.Column("hourly_rate", Money, nullable=True),
            sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
            sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
            sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total_students", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("badge", sa.String(64), nullable=True),
            sa.Column("availability", JSONType, nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_teacher_profiles_rating", "teacher_profiles", ["rating"])
        op.create_index("idx_teacher_profiles_verified", "teacher_profiles", ["verified"])

    if "qualifications" not in existing_tables:
        op.create_table(
            "qualifications",
            _id(),
            _fk("teacher_id", "teacher_profiles.id"),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("institution", sa.String(255), nullable=True),
            sa.Column("year", sa.Integer(), nullable=True),
            sa.Column("certificate", sa.String(1024), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_qualifications_teacher_id", "qualifications", ["teacher_id"])

    if "teacher_subjects" not in existing_tables:
        op.create_table(
            "teacher_subjects",
            _id(),
            _fk("teacher_id", "teacher_profiles.id"),
            sa.Column("subject", sa.String(128), nullable=False),
            sa.Column("experience", sa.Integer(), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_teacher_subjects_teacher_id", "teacher_subjects", ["teacher_id"])

    if "teacher_levels" not in existing_tables:
        op.create_table(
            "teacher_levels",
            _id(),
            _fk("teacher_id", "teacher_profiles.id"),
            sa.Column("level", sa.String(128), nullable=False),
            *_timestamps(),
        )
        op.create_index("ix_teacher_levels_teacher_id", "teacher_levels", ["teacher_id"])

    if "students" not in existing_tables:
        op.create_table(
            "students",
            _id(),
            _fk("parent_id", "parent_profiles.id"),
            sa.Column("first_name", sa.String(128), nullable=False),
            sa.Column("last_name", sa.String(128), nullable=True),
            sa.Column("age", sa.Integer(), nullable=True),
            sa.Column("grade", sa.String(64), nullable=True),
            sa.Column("avatar", sa.String(1024), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_students_parent_id", "students", ["parent_id"])

    if "job_postings" not in existing_tables:
        op.create_table(
            "job_postings",
            _id(),
            _fk("parent_id", "parent_profiles.id"),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("subject", sa.String(128), nullable=False),
            sa.Column("level", sa.String(128), nullable=False),
            sa.Column("student_age", sa.Integer(), nullable=True),
            sa.Column("hours_per_week", sa.String(64), nullable=False),
            sa.Column("budget", sa.String(128), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("requirements", JSONType, nullable=True),
            sa.Column("curriculum", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("application_mode", sa.String(16), nullable=False, server_default="OPEN"),
            sa.Column("status", sa.String(16), nullable=False, server_default="OPEN"),
            *_timestamps(),
        )
        op.create_index("ix_job_postings_parent_id", "job_postings", ["parent_id"])
        op.create_index("idx_job_postings_status", "job_postings", ["status"])
        op.create_index("idx_job_postings_subject_level", "job_postings", ["subject", "level"])
        op.create_index("idx_job_postings_created_at", "job_postings", ["created_at"])

    if "applications" not in existing_tables:
        op.create_table(
            "applications",
            _id(),
            _fk("job_id", "job_postings.id"),
            _fk("teacher_id", "teacher_profiles.id"),
            sa.Column("proposed_rate", Money, nullable=True),
            sa.Column("cover_letter", sa.Text(), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
            *_timestamps(),
            sa.UniqueConstraint("job_id", "teacher_id", name="uq_applications_job_teacher"),
        )
        op.create_index("ix_applications_job_id", "applications", ["job_id"])
        op.create_index("ix_applications_teacher_id", "applications", ["teacher_id"])
        op.create_index("idx_applications_status", "applications", ["status"])

    if "contracts" not in existing_tables:
        op.create_table(
            "contracts",
            _id(),
            _fk("parent_id", "parent_profiles.id"),
            _fk("teacher_id", "teacher_profiles.id"),
            _fk("student_id", "students.id"),
            _fk("job_id", "job_postings.id", nullable=True, ondelete="SET NULL"),
            sa.Column("subject", sa.String(128), nullable=False),
            sa.Column("level", sa.String(128), nullable=False),
            sa.Column("rate", Money, nullable=False),
            sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
            sa.Column("hours_per_week", sa.String(64), nullable=False),
            sa.Column("schedule", JSONType, nullable=True),
            sa.Column("curriculum", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
            sa.Column("start_date", sa.DateTime(timezone=False), nullable=False),
            sa.Column("end_date", sa.DateTime(timezone=False), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_contracts_parent_id", "contracts", ["parent_id"])
        op.create_index("ix_contracts_teacher_id", "contracts", ["teacher_id"])
        op.create_index("ix_contracts_student_id", "contracts", ["student_id"])
        op.create_index("idx_contracts_status", "contracts", ["status"])

    if "classes" not in existing_tables:
        op.create_table(
            "classes",
            _id(),
            _fk("contract_id", "contracts.id"),
            _fk("teacher_id", "teacher_profiles.id"),
            _fk("student_id", "students.id"),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("scheduled_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("duration", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="SCHEDULED"),
            sa.Column("meeting_link", sa.String(1024), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_classes_contract_id", "classes", ["contract_id"])
        op.create_index("ix_classes_student_id", "classes", ["student_id"])
        op.create_index("idx_classes_teacher_scheduled", "classes", ["teacher_id", "scheduled_at"])

    if "reviews" not in existing_tables:
        op.create_table(
            "reviews",
            _id(),
            _fk("contract_id", "contracts.id"),
            _fk("parent_id", "parent_profiles.id"),
            _fk("teacher_id", "teacher_profiles.id"),
            sa.Column("rating", sa.Integer(), nullable=False),
            sa.Column("comment", sa.Text(), nullable=True),
            sa.Column("anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.UniqueConstraint("contract_id", "parent_id", name="uq_reviews_contract_parent"),
            sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        )
        op.create_index("ix_reviews_teacher_id", "reviews", ["teacher_id"])

    if "messages" not in existing_tables:
        op.create_table(
            "messages",
            _id(),
            _fk("sender_id", "user_profiles.id"),
            _fk("receiver_id", "user_profiles.id"),
            _fk("contract_id", "contracts.id", nullable=True, ondelete="SET NULL"),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("read_at", sa.DateTime(timezone=False), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_messages_sender_receiver", "messages", ["sender_id", "receiver_id"])
        op.create_index("idx_messages_receiver_read", "messages", ["receiver_id", "read"])

    if "payments" not in existing_tables:
        op.create_table(
            "payments",
            _id(),
            _fk("contract_id", "contracts.id"),
            sa.Column("amount", Money, nullable=False),
            sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
            sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
            sa.Column("payment_method", sa.String(64), nullable=True),
            sa.Column("transaction_id", sa.String(255), nullable=True),
            sa.Column("paid_at", sa.DateTime(timezone=False), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_payments_contract_id", "payments", ["contract_id"])
        op.create_index("idx_payments_status", "payments", ["status"])

    if "teacher_applications" not in existing_tables:
        op.create_table(
            "teacher_applications",
            _id(),
            _fk("user_id", "user_profiles.id"),
            sa.Column("subjects", JSONType, nullable=False),
            sa.Column("levels", JSONType, nullable=False),
            sa.Column("qualifications", JSONType, nullable=True),
            sa.Column("experience", sa.Text(), nullable=True),
            sa.Column("resume", sa.String(1024), nullable=True),
            sa.Column("certificates", JSONType, nullable=True),
            sa.Column("cover_letter", sa.Text(), nullable=False),
            sa.Column("status", sa.String(32), nullable=False, server_default="PENDING"),
            sa.Column("admin_notes", sa.Text(), nullable=True),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            _fk("reviewed_by", "user_profiles.id", nullable=True, ondelete="SET NULL"),
            sa.Column("reviewed_at", sa.DateTime(timezone=False), nullable=True),
            sa.Column("interview_scheduled_at", sa.DateTime(timezone=False), nullable=True),
            sa.Column("interview_link", sa.String(1024), nullable=True),
            sa.Column("interview_notes", sa.Text(), nullable=True),
            sa.Column("interview_score", sa.Float(), nullable=True),
            sa.Column("max_interview_score", sa.Float(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_teacher_applications_status", "teacher_applications", ["status"])
        op.create_index(
            "idx_teacher_applications_user_created", "teacher_applications", ["user_id", "created_at"]
        )

    if "contacts" not in existing_tables:
        op.create_table(
            "contacts",
            _id(),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("subject", sa.String(255), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("phone", sa.String(64), nullable=True),
            _fk("user_id", "user_profiles.id", nullable=True, ondelete="SET NULL"),
            sa.Column("status", sa.String(32), nullable=False, server_default="NEW"),
            *_timestamps(),
        )
        op.create_index("idx_contacts_status_created", "contacts", ["status", "created_at"])


def downgrade() -> None:
    """Drop every StudyLinker table (children first)."""
    for table in (
        "contacts",
        "teacher_applications",
        "payments",
        "messages",
        "reviews",
        "classes",
        "contracts",
        "applications",
        "job_postings",
        "students",
        "teacher_levels",
        "teacher_subjects",
        "qualifications",
        "teacher_profiles",
        "parent_profiles",
        "user_profiles",
        "audit_events",
        "accounts",
    ):
        op.drop_table(table)
