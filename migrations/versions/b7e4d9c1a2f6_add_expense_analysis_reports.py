"""add expense analysis reports

Revision ID: b7e4d9c1a2f6
Revises: a0f1c2d3e4b5
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "b7e4d9c1a2f6"
down_revision = "a0f1c2d3e4b5"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "expense_analysis_reports",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("document_name", sa.String(255), nullable=False),
        sa.Column("analysis_report", sa.Text(), server_default="", nullable=False),
        sa.Column("extracted_expenses", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("total_expenses", sa.Numeric(15, 2), server_default="0", nullable=False),
        sa.Column("analysis_insights", sa.Text(), server_default="", nullable=False),
        sa.Column("recommendations", sa.Text(), server_default="", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_expense_analysis_reports_user_id", "expense_analysis_reports", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_expense_analysis_reports_user_id", table_name="expense_analysis_reports")
    op.drop_table("expense_analysis_reports")
