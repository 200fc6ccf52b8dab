"""Initial schema — forms, companies, submissions and reports.

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


question_type = postgresql.ENUM(
    "text", "multiple_choice", "checkbox", "conditional",
    name="question_type",
    create_type=False,
)
conditional_operator = postgresql.ENUM(
    "AND", "OR",
    name="conditional_operator",
    create_type=False,
)
industry = postgresql.ENUM(
    "technology", "healthcare", "finance", "education", "manufacturing",
    "retail", "hospitality", "construction", "real_estate", "transportation",
    "logistics", "agriculture", "media", "professional_services", "non_profit",
    "other",
    name="industry",
    create_type=False,
)
company_size = postgresql.ENUM(
    "startup", "small", "medium", "large", "enterprise",
    name="company_size",
    create_type=False,
)
company_type = postgresql.ENUM(
    "partner", "client",
    name="company_type",
    create_type=False,
)

ENUMS = (question_type, conditional_operator, industry, company_size, company_type)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    # ── 1. forms ────────────────────────────────────────────────────
    op.create_table(
        "forms",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        _created_at(),
    )

    # ── 2. question_categories ──────────────────────────────────────
    op.create_table(
        "question_categories",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "form_id",
            sa.Integer,
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("order", sa.Integer, server_default="0", nullable=False),
        _created_at(),
    )

    # ── 3. questions ────────────────────────────────────────────────
    op.create_table(
        "questions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "category_id",
            sa.Integer,
            sa.ForeignKey("question_categories.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("type", question_type, nullable=False),
        sa.Column("required", sa.Boolean, server_default="false", nullable=False),
        sa.Column("order", sa.Integer, server_default="0", nullable=False),
        _created_at(),
    )

    # ── 4. question_options ─────────────────────────────────────────
    op.create_table(
        "question_options",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "question_id",
            sa.Integer,
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("text", sa.String(255), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("order", sa.Integer, server_default="0", nullable=False),
        _created_at(),
    )

    # ── 5. question_conditionals ────────────────────────────────────
    op.create_table(
        "question_conditionals",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "question_id",
            sa.Integer,
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column(
            "condition_question_id",
            sa.Integer,
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column(
            "condition_values",
            sa.JSON,
            nullable=False,
            comment="Array of accepted answer values",
        ),
        sa.Column("show_question", sa.Boolean, server_default="true", nullable=False),
        sa.Column("operator", conditional_operator, server_default="OR", nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "question_id <> condition_question_id",
            name="ck_conditional_distinct_questions",
        ),
    )

    # ── 6. companies ────────────────────────────────────────────────
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("form_id", sa.Integer, sa.ForeignKey("forms.id"), index=True, nullable=False),
        sa.Column("name", sa.String(255), unique=True, index=True, nullable=False),
        sa.Column("industry", industry, nullable=False),
        sa.Column("size", company_size, nullable=False),
        sa.Column("image_url", sa.String, nullable=False),
        sa.Column("type", company_type, server_default="client", nullable=False),
        sa.Column(
            "partner_id",
            sa.Integer,
            sa.ForeignKey("companies.id", ondelete="SET NULL"),
            index=True,
            nullable=True,
        ),
        sa.Column(
            "provider_email",
            sa.String,
            nullable=True,
            comment="Where generated reports are delivered",
        ),
        _created_at(),
    )

    # ── 7. submissions ──────────────────────────────────────────────
    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("form_id", sa.Integer, sa.ForeignKey("forms.id"), index=True, nullable=False),
        sa.Column(
            "company_id",
            sa.Integer,
            sa.ForeignKey("companies.id"),
            index=True,
            nullable=False,
        ),
        _created_at(),
    )

    # ── 8. answers ──────────────────────────────────────────────────
    op.create_table(
        "answers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer,
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column(
            "question_id",
            sa.Integer,
            sa.ForeignKey("questions.id"),
            index=True,
            nullable=False,
        ),
        sa.Column("value", sa.Text, nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_answers_submission_question",
        "answers",
        ["submission_id", "question_id"],
    )

    # ── 9. reports ──────────────────────────────────────────────────
    op.create_table(
        "reports",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer,
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        _created_at(),
    )


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_table("reports")

    op.drop_index("ix_answers_submission_question", table_name="answers")
    op.drop_table("answers")

    op.drop_table("submissions")
    op.drop_table("companies")
    op.drop_table("question_conditionals")
    op.drop_table("question_options")
    op.drop_table("questions")
    op.drop_table("question_categories")
    op.drop_table("forms")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
