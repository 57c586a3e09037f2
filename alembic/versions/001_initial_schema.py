"""Initial schema - model_calls, eval_results, knowledge_chunks.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMENSIONS = 768


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "model_calls",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("provider", sa.String(64), nullable=False, server_default="local"),
        sa.Column("model", sa.String(255), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("response", sa.Text(), nullable=False, server_default=""),
        sa.Column("latency_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("prompt_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("response_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_usd", sa.Numeric(14, 8), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="SUCCESS"),
        sa.Column("hallucinated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("toxic", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("route", sa.Text(), nullable=True),
        sa.CheckConstraint("status IN ('SUCCESS', 'FAIL', 'FLAGGED')", name="ck_model_calls_status"),
        sa.CheckConstraint(
            "latency_ms >= 0 AND prompt_tokens >= 0 AND response_tokens >= 0 AND cost_usd >= 0",
            name="ck_model_calls_non_negative",
        ),
    )
    op.create_index("ix_model_calls_created_at", "model_calls", ["created_at"])
    op.create_index("ix_model_calls_model_created_at", "model_calls", ["model", "created_at"])

    op.create_table(
        "eval_results",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "call_id",
            sa.String(36),
            sa.ForeignKey("model_calls.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("details", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= 1", name="ck_eval_results_score_range"),
    )
    # One live result per call and kind; upserts target this constraint
    op.create_unique_constraint(
        "uq_eval_results_call_kind",
        "eval_results",
        ["call_id", "kind"],
    )
    op.create_index("ix_eval_results_created_at", "eval_results", ["created_at"])

    op.create_table(
        "knowledge_chunks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", Vector(EMBEDDING_DIMENSIONS), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("knowledge_chunks")
    op.drop_index("ix_eval_results_created_at", table_name="eval_results")
    op.drop_table("eval_results")
    op.drop_index("ix_model_calls_model_created_at", table_name="model_calls")
    op.drop_index("ix_model_calls_created_at", table_name="model_calls")
    op.drop_table("model_calls")
