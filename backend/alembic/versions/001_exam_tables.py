"""
001_exam_tables.py

Question pool and exam attempt tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create question and exam attempt tables."""

    # Questions table
    op.create_table(
        "questions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False, server_default="General"),
        sa.Column(
            "difficulty",
            sa.String(10),
            sa.CheckConstraint("difficulty IN ('Easy', 'Medium', 'Hard')"),
            nullable=False,
            server_default="Medium",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    # Question options table
    op.create_table(
        "question_options",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "question_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("question_id", "position"),
    )

    # Exam attempts table (append-only)
    op.create_table(
        "exam_attempts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= total_questions"),
        sa.CheckConstraint("time_spent >= 0"),
    )

    # Per-question outcomes; question_id deliberately has no foreign key so
    # deleting a question keeps history intact.
    op.create_table(
        "exam_attempt_answers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "attempt_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("exam_attempts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("question_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("selected_option", sa.Integer(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
    )

    # Create indexes for performance
    op.create_index(
        "ix_question_options_question_id",
        "question_options",
        ["question_id"],
    )
    op.create_index(
        "ix_exam_attempts_user_completed",
        "exam_attempts",
        ["user_id", "completed_at"],
    )
    op.create_index(
        "ix_exam_attempt_answers_attempt_id",
        "exam_attempt_answers",
        ["attempt_id"],
    )


def downgrade() -> None:
    """Drop question and exam attempt tables."""

    # Drop indexes
    op.drop_index("ix_exam_attempt_answers_attempt_id", table_name="exam_attempt_answers")
    op.drop_index("ix_exam_attempts_user_completed", table_name="exam_attempts")
    op.drop_index("ix_question_options_question_id", table_name="question_options")

    # Drop tables
    op.drop_table("exam_attempt_answers")
    op.drop_table("exam_attempts")
    op.drop_table("question_options")
    op.drop_table("questions")
