"""Initial relationship coaching schema

Revision ID: 3f9c2a7d1e04
Revises:
Create Date: 2026-10-17 00:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f9c2a7d1e04"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum labels are the Python member names (SQLAlchemy Enum default)
RELATIONSHIP_TYPE_VALUES = ("ROMANTIC", "WORK", "FAMILY", "FRIEND", "OTHER")
MEMBER_ROLE_VALUES = ("OWNER", "MEMBER")
INVITATION_STATUS_VALUES = ("PENDING", "ACCEPTED", "DECLINED")
INSIGHT_PRIORITY_VALUES = ("LOW", "MEDIUM", "HIGH")


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), primary_key=True)


def _user_fk(name: str = "user_id", nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("users.user_id", ondelete=ondelete),
        nullable=nullable,
    )


def _relationship_fk(nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        "relationship_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("relationships.relationship_id", ondelete=ondelete),
        nullable=nullable,
    )


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    """Upgrade database schema."""

    # ------------------------------------------------------------------
    # 1. Enum types
    # ------------------------------------------------------------------
    relationshiptype = postgresql.ENUM(*RELATIONSHIP_TYPE_VALUES, name="relationshiptype", create_type=False)
    memberrole = postgresql.ENUM(*MEMBER_ROLE_VALUES, name="memberrole", create_type=False)
    invitationstatus = postgresql.ENUM(*INVITATION_STATUS_VALUES, name="invitationstatus", create_type=False)
    insightpriority = postgresql.ENUM(*INSIGHT_PRIORITY_VALUES, name="insightpriority", create_type=False)

    for enum_type in (relationshiptype, memberrole, invitationstatus, insightpriority):
        enum_type.create(op.get_bind(), checkfirst=True)

    # ------------------------------------------------------------------
    # 2. Users and relationships
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        _uuid_pk("user_id"),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("timezone", sa.String(50), nullable=True),
        sa.Column("notification_preferences", postgresql.JSONB(), nullable=True),
        sa.Column("relationship_goals", postgresql.JSONB(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "relationships",
        _uuid_pk("relationship_id"),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("relationship_type", relationshiptype, nullable=False),
        _user_fk("created_by", nullable=True, ondelete="SET NULL"),
        sa.Column("start_date", sa.Date(), nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "relationship_members",
        _uuid_pk("member_id"),
        _relationship_fk(),
        _user_fk(),
        sa.Column("role", memberrole, nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("relationship_id", "user_id", name="uq_relationship_member"),
    )
    op.create_index("idx_relationship_members_user", "relationship_members", ["user_id"])

    op.create_table(
        "relationship_invitations",
        _uuid_pk("invitation_id"),
        _relationship_fk(),
        _user_fk("invited_by", nullable=True, ondelete="SET NULL"),
        sa.Column("invitee_email", sa.String(255), nullable=False),
        sa.Column("status", invitationstatus, nullable=False),
        _created_at(),
    )

    op.create_table(
        "relationship_profiles",
        _uuid_pk("profile_id"),
        _user_fk(),
        _relationship_fk(),
        sa.Column("perceived_closeness", sa.Integer(), nullable=True),
        sa.Column("communication_frequency", sa.String(50), nullable=True),
        sa.Column("preferred_interaction_style", sa.String(50), nullable=True),
        sa.Column("relationship_expectations", postgresql.JSONB(), nullable=True),
        sa.Column("interaction_preferences", postgresql.JSONB(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", "relationship_id", name="uq_relationship_profile_user"),
    )

    op.create_table(
        "universal_user_profiles",
        _uuid_pk("profile_id"),
        _user_fk(),
        sa.Column("inclusion_need", sa.Integer(), nullable=True),
        sa.Column("control_need", sa.Integer(), nullable=True),
        sa.Column("affection_need", sa.Integer(), nullable=True),
        sa.Column("attachment_style", sa.String(30), nullable=True),
        sa.Column("attachment_confidence", sa.Float(), nullable=False, server_default="0"),
        sa.Column("communication_directness", sa.String(50), nullable=True),
        sa.Column("communication_assertiveness", sa.String(50), nullable=True),
        sa.Column("communication_context", sa.String(50), nullable=True),
        sa.Column("support_preference", sa.String(50), nullable=True),
        sa.Column("conflict_style", sa.String(50), nullable=True),
        sa.Column("love_language_receive", sa.String(50), nullable=True),
        sa.Column("love_language_give", sa.String(50), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", name="uq_universal_user_profiles_user_id"),
    )

    # ------------------------------------------------------------------
    # 3. Journal, check-ins and cycle tracking
    # ------------------------------------------------------------------
    op.create_table(
        "journal_entries",
        _uuid_pk("entry_id"),
        _user_fk(),
        _relationship_fk(nullable=True, ondelete="SET NULL"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("mood_score", sa.Integer(), nullable=True),
        sa.Column("ai_analysis", postgresql.JSONB(), nullable=True),
        sa.Column("analysis_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ready_for_batch_processing", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("batch_processed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_journal_user_created", "journal_entries", ["user_id", "created_at"])
    op.create_index("idx_journal_relationship", "journal_entries", ["relationship_id"])

    op.create_table(
        "daily_checkins",
        _uuid_pk("checkin_id"),
        _user_fk(),
        _relationship_fk(nullable=True, ondelete="SET NULL"),
        sa.Column("connection_score", sa.Integer(), nullable=True),
        sa.Column("mood_score", sa.Integer(), nullable=True),
        sa.Column("gratitude_note", sa.Text(), nullable=True),
        sa.Column("challenge_note", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_checkins_user_created", "daily_checkins", ["user_id", "created_at"])

    op.create_table(
        "relationship_checkins",
        _uuid_pk("checkin_id"),
        _user_fk(),
        _relationship_fk(),
        sa.Column("relationship_type", relationshiptype, nullable=False),
        sa.Column("metric_values", postgresql.JSONB(), nullable=False),
        _created_at(),
    )
    op.create_index(
        "idx_rel_checkins_lookup",
        "relationship_checkins",
        ["user_id", "relationship_id", "created_at"],
    )

    op.create_table(
        "menstrual_cycles",
        _uuid_pk("cycle_id"),
        _user_fk(),
        sa.Column("cycle_start_date", sa.Date(), nullable=False),
        sa.Column("cycle_length", sa.Integer(), nullable=False, server_default="28"),
        sa.Column("period_length", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("symptoms", postgresql.JSONB(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    # One active cycle per user
    op.create_index(
        "uq_cycle_one_active_per_user",
        "menstrual_cycles",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # ------------------------------------------------------------------
    # 4. Insights, partner suggestions and feedback
    # ------------------------------------------------------------------
    op.create_table(
        "relationship_insights",
        _uuid_pk("insight_id"),
        _user_fk(),
        _relationship_fk(nullable=True),
        sa.Column("insight_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", insightpriority, nullable=False),
        sa.Column("relevance_score", sa.Float(), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("action_steps", postgresql.JSONB(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dashboard_dismissed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("idx_insights_user_created", "relationship_insights", ["user_id", "created_at"])

    op.create_table(
        "insight_feedback",
        _uuid_pk("feedback_id"),
        sa.Column(
            "insight_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("relationship_insights.insight_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk(),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("helpful", sa.Boolean(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "partner_suggestions",
        _uuid_pk("suggestion_id"),
        _user_fk("recipient_user_id"),
        _user_fk("source_user_id", nullable=True),
        _relationship_fk(nullable=True),
        sa.Column(
            "source_entry_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("journal_entries.entry_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("suggestion_type", sa.String(50), nullable=False),
        sa.Column("suggestion_text", sa.Text(), nullable=False),
        sa.Column("anonymized_context", sa.Text(), nullable=True),
        sa.Column("priority_score", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("confidence_score", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("source_need_intensity", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("batch_date", sa.Date(), nullable=True),
        sa.Column("batch_id", sa.String(100), nullable=True),
        _created_at(),
    )
    op.create_index(
        "idx_suggestions_recipient_created",
        "partner_suggestions",
        ["recipient_user_id", "created_at"],
    )
    op.create_index(
        "idx_suggestions_relationship_created",
        "partner_suggestions",
        ["relationship_id", "created_at"],
    )

    op.create_table(
        "suggestion_feedback",
        _uuid_pk("feedback_id"),
        sa.Column(
            "suggestion_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("partner_suggestions.suggestion_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk(),
        sa.Column("suggestion_type", sa.String(50), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("helpful", sa.Boolean(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        _created_at(),
    )

    # ------------------------------------------------------------------
    # 5. Scores
    # ------------------------------------------------------------------
    op.create_table(
        "connection_scores",
        _uuid_pk("score_id"),
        _user_fk(),
        _relationship_fk(nullable=True),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("trend", sa.String(20), nullable=False, server_default="stable"),
        sa.Column("factors", postgresql.JSONB(), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_connection_scores_user_calc", "connection_scores", ["user_id", "calculated_at"])

    op.create_table(
        "relationship_health_scores",
        _uuid_pk("score_id"),
        _user_fk(),
        _relationship_fk(),
        sa.Column("relationship_type", relationshiptype, nullable=False),
        sa.Column("health_score", sa.Integer(), nullable=False),
        sa.Column("metric_values", postgresql.JSONB(), nullable=True),
        sa.Column("trend_data", postgresql.JSONB(), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "idx_health_scores_rel_calc",
        "relationship_health_scores",
        ["relationship_id", "user_id", "calculated_at"],
    )

    # ------------------------------------------------------------------
    # 6. Billing
    # ------------------------------------------------------------------
    op.create_table(
        "premium_subscriptions",
        _uuid_pk("subscription_id"),
        _user_fk(),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("plan_type", sa.String(30), nullable=True),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", name="uq_premium_subscriptions_user_id"),
        sa.UniqueConstraint("stripe_subscription_id", name="uq_premium_subscriptions_stripe_subscription_id"),
    )
    op.create_index("ix_premium_subscriptions_user_id", "premium_subscriptions", ["user_id"])

    op.create_table(
        "stripe_customers",
        _uuid_pk("customer_row_id"),
        _user_fk(),
        sa.Column("stripe_customer_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        _created_at(),
        sa.UniqueConstraint("user_id", name="uq_stripe_customers_user_id"),
        sa.UniqueConstraint("stripe_customer_id", name="uq_stripe_customers_stripe_customer_id"),
    )

    op.create_table(
        "subscription_events",
        _uuid_pk("event_id"),
        _user_fk(),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("stripe_event_id", sa.String(255), nullable=True),
        sa.Column("event_data", postgresql.JSONB(), nullable=True),
        _created_at(),
    )
    op.create_index("idx_subscription_events_user", "subscription_events", ["user_id", "created_at"])

    # ------------------------------------------------------------------
    # 7. Nightly batch bookkeeping
    # ------------------------------------------------------------------
    op.create_table(
        "batch_processing_log",
        _uuid_pk("log_id"),
        sa.Column("batch_date", sa.Date(), nullable=False),
        _relationship_fk(nullable=True, ondelete="SET NULL"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("journals_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("suggestions_generated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_batch_log_date_status", "batch_processing_log", ["batch_date", "status"])


def downgrade() -> None:
    """Downgrade database schema."""
    for table in (
        "batch_processing_log",
        "subscription_events",
        "stripe_customers",
        "premium_subscriptions",
        "relationship_health_scores",
        "connection_scores",
        "suggestion_feedback",
        "partner_suggestions",
        "insight_feedback",
        "relationship_insights",
        "menstrual_cycles",
        "relationship_checkins",
        "daily_checkins",
        "journal_entries",
        "universal_user_profiles",
        "relationship_profiles",
        "relationship_invitations",
        "relationship_members",
        "relationships",
        "users",
    ):
        op.drop_table(table)

    for enum_name in ("insightpriority", "invitationstatus", "memberrole", "relationshiptype"):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
