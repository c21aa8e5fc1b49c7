"""create finsight schema

Revision ID: a0f1c2d3e4b5
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "a0f1c2d3e4b5"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk(name: str = "id") -> sa.Column:
    return sa.Column(name, sa.String(36), primary_key=True)


def _user_fk(nullable: bool = False) -> sa.Column:
    return sa.Column(
        "user_id", sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=nullable,
    )


def _org_fk() -> sa.Column:
    return sa.Column(
        "organization_id", sa.String(36),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade() -> None:
    # -- credential store --
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("jwt_version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "organizations",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "team_memberships",
        _org_fk(),
        _user_fk(),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("joined_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("organization_id", "user_id"),
    )
    op.create_index("ix_team_memberships_user_id", "team_memberships", ["user_id"])

    # -- customer data --
    op.create_table(
        "financial_goals",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("goal_name", sa.String(255), nullable=False),
        sa.Column("target_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("current_amount", sa.Numeric(15, 2), server_default="0", nullable=False),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_financial_goals_user_id", "financial_goals", ["user_id"])

    op.create_table(
        "investment_products",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("product_category", sa.String(30), nullable=False),
        sa.Column("risk_level", sa.String(20), nullable=False),
        sa.Column("expected_return", sa.Numeric(5, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_investment_products_user_id", "investment_products", ["user_id"])

    op.create_table(
        "customer_profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("income_range", sa.String(50), nullable=False),
        sa.Column("current_credit_score", sa.Integer(), nullable=False),
        sa.Column("risk_appetite", sa.String(20), nullable=False),
        sa.Column("primary_financial_goal", sa.String(30), nullable=False),
        sa.Column("onboarding_completed", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("profile_created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", name="uq_customer_profiles_user_id"),
        sa.CheckConstraint(
            "current_credit_score BETWEEN 300 AND 850", name="ck_customer_profiles_credit_score"
        ),
    )

    # -- organization documents --
    op.create_table(
        "documents",
        _uuid_pk(),
        _org_fk(),
        sa.Column("uploaded_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("storage_url", sa.String(500), nullable=False),
        sa.Column("document_type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("uploaded_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_documents_organization_id", "documents", ["organization_id"])
    op.create_index("ix_documents_org_status", "documents", ["organization_id", "status"])

    op.create_table(
        "document_analysis_results",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "document_id", sa.String(36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("analysis_type", sa.String(30), nullable=False),
        sa.Column("extracted_data", JSONB(), server_default="{}", nullable=False),
        sa.Column("ai_summary", sa.Text(), server_default="", nullable=False),
        sa.Column("key_findings", JSONB(), server_default="[]", nullable=False),
        sa.Column("risk_indicators", JSONB(), server_default="{}", nullable=False),
        sa.Column("recommendations", JSONB(), server_default="[]", nullable=False),
        sa.Column("confidence_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("processed_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("document_id", name="uq_document_analysis_results_document_id"),
    )

    op.create_table(
        "knowledge_base_documents",
        _uuid_pk(),
        _org_fk(),
        sa.Column("uploaded_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("storage_url", sa.String(500), nullable=False),
        sa.Column("document_category", sa.String(30), nullable=False),
        sa.Column("file_size", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index(
        "ix_knowledge_base_documents_organization_id", "knowledge_base_documents", ["organization_id"]
    )

    # -- AI --
    op.create_table(
        "ai_sessions",
        _uuid_pk("session_id"),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("organization_id", sa.String(36), nullable=True),
        sa.Column("session_title", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("conversation_history", JSONB(), server_default="[]", nullable=False),
    )
    op.create_index("ix_ai_sessions_user_id", "ai_sessions", ["user_id"])
    op.create_index("ix_ai_sessions_user_updated", "ai_sessions", ["user_id", "last_updated_at"])

    op.create_table(
        "investment_tips",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("ai_confidence_score", sa.Integer(), server_default="0", nullable=False),
        sa.Column("market_impact", sa.String(10), server_default="MEDIUM", nullable=False),
        sa.Column("applicable_risk_levels", JSONB(), server_default="[]", nullable=False),
        sa.Column("tags", JSONB(), server_default="[]", nullable=False),
        sa.Column("sources_used", JSONB(), server_default="[]", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("is_personalized", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("published_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_investment_tips_category", "investment_tips", ["category"])

    # -- credit health --
    op.create_table(
        "credit_profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("current_score", sa.Integer(), nullable=False),
        sa.Column("score_rating", sa.String(20), nullable=False),
        sa.Column("score_change_30d", sa.Integer(), server_default="0", nullable=False),
        sa.Column("score_change_90d", sa.Integer(), server_default="0", nullable=False),
        sa.Column("score_trend", sa.String(10), server_default="stable", nullable=False),
        sa.Column("last_updated", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", name="uq_credit_profiles_user_id"),
    )

    op.create_table(
        "credit_accounts",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("account_type", sa.String(20), nullable=False),
        sa.Column("account_name", sa.String(255), nullable=False),
        sa.Column("institution_name", sa.String(255), nullable=True),
        sa.Column("current_balance", sa.Numeric(15, 2), server_default="0", nullable=False),
        sa.Column("credit_limit", sa.Numeric(15, 2), nullable=True),
        sa.Column("interest_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("minimum_payment", sa.Numeric(15, 2), nullable=True),
        sa.Column("payment_history_score", sa.Numeric(5, 2), server_default="100", nullable=False),
        sa.Column("account_status", sa.String(20), server_default="active", nullable=False),
        sa.Column("opened_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_credit_accounts_user_id", "credit_accounts", ["user_id"])

    op.create_table(
        "credit_factors",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("factor_name", sa.String(100), nullable=False),
        sa.Column("impact_type", sa.String(10), nullable=False),
        sa.Column("impact_score", sa.Integer(), server_default="0", nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("recommendation", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    )
    op.create_index("ix_credit_factors_user_id", "credit_factors", ["user_id"])

    op.create_table(
        "credit_recommendations",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("recommendation_type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("priority", sa.String(10), server_default="medium", nullable=False),
        sa.Column("potential_impact", sa.Integer(), server_default="0", nullable=False),
        sa.Column("estimated_timeline", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_credit_recommendations_user_id", "credit_recommendations", ["user_id"])

    op.create_table(
        "credit_score_history",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("score_date", sa.Date(), nullable=False),
        sa.UniqueConstraint("user_id", "score_date", name="uq_credit_score_history_user_date"),
    )
    op.create_index("ix_credit_score_history_user_id", "credit_score_history", ["user_id"])

    op.create_table(
        "credit_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        _user_fk(),
        sa.Column("alert_type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), server_default="", nullable=False),
        sa.Column("severity", sa.String(10), server_default="info", nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_credit_alerts_user_id", "credit_alerts", ["user_id"])


def downgrade() -> None:
    for table in (
        "credit_alerts",
        "credit_score_history",
        "credit_recommendations",
        "credit_factors",
        "credit_accounts",
        "credit_profiles",
        "investment_tips",
        "ai_sessions",
        "knowledge_base_documents",
        "document_analysis_results",
        "documents",
        "customer_profiles",
        "investment_products",
        "financial_goals",
        "team_memberships",
        "organizations",
        "users",
    ):
        op.drop_table(table)
