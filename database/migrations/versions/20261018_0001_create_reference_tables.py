"""create school reference tables

Revision ID: 20261018_0001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "academic_classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_academic_classes_school_id", "academic_classes", ["school_id"])

    op.create_table(
        "class_sections",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_class_sections_school_id", "class_sections", ["school_id"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"])

    op.create_table(
        "class_section_subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("class_section_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("class_section_id", "subject_id", name="uq_class_section_subjects_section_subject"),
    )
    op.create_index("ix_class_section_subjects_school_id", "class_section_subjects", ["school_id"])

    op.create_table(
        "teacher_subject_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("class_section_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_user_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "class_section_id",
            "subject_id",
            name="uq_teacher_subject_assignments_section_subject",
        ),
    )
    op.create_index("ix_teacher_subject_assignments_school_id", "teacher_subject_assignments", ["school_id"])

    op.create_table(
        "school_user_directory",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("school_id", "user_id", name="uq_school_user_directory_school_user"),
    )
    op.create_index("ix_school_user_directory_school_id", "school_user_directory", ["school_id"])


def downgrade() -> None:
    op.drop_index("ix_school_user_directory_school_id", table_name="school_user_directory")
    op.drop_table("school_user_directory")
    op.drop_index("ix_teacher_subject_assignments_school_id", table_name="teacher_subject_assignments")
    op.drop_table("teacher_subject_assignments")
    op.drop_index("ix_class_section_subjects_school_id", table_name="class_section_subjects")
    op.drop_table("class_section_subjects")
    op.drop_index("ix_subjects_school_id", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_class_sections_school_id", table_name="class_sections")
    op.drop_table("class_sections")
    op.drop_index("ix_academic_classes_school_id", table_name="academic_classes")
    op.drop_table("academic_classes")
