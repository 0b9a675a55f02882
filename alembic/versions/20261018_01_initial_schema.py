"""
Initial Yunoa schema.

- Accounts + one-time auth artifacts (verification codes, password resets).
- Catalog: videos, episodes, subtitles, categories.
- Engagement: favorites, ratings, watch history, notifications.
- Billing: plans, subscriptions, payments, subscriber mirror, billing settings.
- Seed the three purchasable plans (basic_monthly, premium_monthly, lifetime).
"""

import uuid

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261018_01_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _user_fk(**kw) -> sa.Column:
    return sa.Column(
        "user_id",
        sa.Uuid(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE", name=kw.pop("fk_name")),
        nullable=False,
        **kw,
    )


def _video_fk(table: str) -> sa.Column:
    return sa.Column(
        "video_id",
        sa.Uuid(as_uuid=True),
        sa.ForeignKey("videos.id", ondelete="CASCADE", name=f"fk_{table}_video_id_videos"),
        nullable=False,
    )


def upgrade() -> None:
    # --- Accounts ---
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
        sa.Column("is_first_login", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role_valid"),
        sa.CheckConstraint("length(username) > 0", name="ck_users_username_not_blank"),
        sa.CheckConstraint("length(email) > 0", name="ck_users_email_not_blank"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "email_verification_codes",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=6), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_email_verification_codes_email", "email_verification_codes", ["email"])
    op.create_index("ix_email_verification_codes_created_at", "email_verification_codes", ["created_at"])
    op.create_index("ix_email_codes_lookup", "email_verification_codes", ["email", "code", "used"])

    op.create_table(
        "password_resets",
        _id(),
        _user_fk(fk_name="fk_password_resets_user_id_users"),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
    )
    op.create_index("ix_password_resets_user_id", "password_resets", ["user_id"])
    op.create_index("ix_password_resets_created_at", "password_resets", ["created_at"])

    # --- Catalog ---
    op.create_table(
        "videos",
        _id(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail", sa.String(length=1024), nullable=True),
        sa.Column("video_url", sa.String(length=2048), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("language", sa.String(length=50), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="movie"),
        sa.Column("total_seasons", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_episodes", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_ratings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_by",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_videos_created_by_users"),
            nullable=True,
        ),
        _created_at(),
        sa.CheckConstraint("type IN ('movie', 'series')", name="ck_videos_type_valid"),
        sa.CheckConstraint("views >= 0", name="ck_videos_views_non_negative"),
        sa.CheckConstraint("total_ratings >= 0", name="ck_videos_total_ratings_non_negative"),
        sa.CheckConstraint("average_rating >= 0 AND average_rating <= 5", name="ck_videos_average_rating_range"),
    )
    op.create_index("ix_videos_category", "videos", ["category"])
    op.create_index("ix_videos_created_at", "videos", ["created_at"])
    op.create_index("ix_videos_rating_rank", "videos", ["average_rating", "total_ratings"])

    op.create_table(
        "episodes",
        _id(),
        sa.Column(
            "series_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("videos.id", ondelete="CASCADE", name="fk_episodes_series_id_videos"),
            nullable=False,
        ),
        sa.Column("season_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("episode_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail", sa.String(length=1024), nullable=True),
        sa.Column("video_url", sa.String(length=2048), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.UniqueConstraint(
            "series_id", "season_number", "episode_number", name="uq_episodes_series_season_episode"
        ),
        sa.CheckConstraint("season_number >= 1", name="ck_episodes_season_positive"),
        sa.CheckConstraint("episode_number >= 1", name="ck_episodes_episode_positive"),
    )
    op.create_index("ix_episodes_series_id", "episodes", ["series_id"])
    op.create_index("ix_episodes_created_at", "episodes", ["created_at"])

    op.create_table(
        "subtitles",
        _id(),
        _video_fk("subtitles"),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("language_name", sa.String(length=64), nullable=True),
        sa.Column("subtitle_url", sa.String(length=512), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_subtitles_video_id", "subtitles", ["video_id"])
    op.create_index("ix_subtitles_created_at", "subtitles", ["created_at"])

    op.create_table(
        "categories",
        _id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_categories_name"),
        sa.CheckConstraint("length(name) > 0", name="ck_categories_name_not_blank"),
    )
    op.create_index("ix_categories_created_at", "categories", ["created_at"])

    # --- Engagement ---
    op.create_table(
        "favorites",
        _id(),
        _user_fk(fk_name="fk_favorites_user_id_users"),
        _video_fk("favorites"),
        _created_at("added_at"),
        sa.UniqueConstraint("user_id", "video_id", name="uq_favorites_user_video"),
    )
    op.create_index("ix_favorites_user_id", "favorites", ["user_id"])
    op.create_index("ix_favorites_video_id", "favorites", ["video_id"])
    op.create_index("ix_favorites_user_added", "favorites", ["user_id", "added_at"])

    op.create_table(
        "ratings",
        _id(),
        _user_fk(fk_name="fk_ratings_user_id_users"),
        _video_fk("ratings"),
        sa.Column("rating", sa.Integer(), nullable=False),
        _created_at("rated_at"),
        sa.UniqueConstraint("user_id", "video_id", name="uq_ratings_user_video"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_ratings_rating_range"),
    )
    op.create_index("ix_ratings_user_id", "ratings", ["user_id"])
    op.create_index("ix_ratings_video_id", "ratings", ["video_id"])

    op.create_table(
        "watch_history",
        _id(),
        _user_fk(fk_name="fk_watch_history_user_id_users"),
        _video_fk("watch_history"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        _created_at("watched_at"),
        sa.UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_watch_history_progress_range"),
    )
    op.create_index("ix_watch_history_user_id", "watch_history", ["user_id"])
    op.create_index("ix_watch_history_video_id", "watch_history", ["video_id"])
    op.create_index("ix_watch_history_user_watched", "watch_history", ["user_id", "watched_at"])

    op.create_table(
        "notifications",
        _id(),
        _user_fk(fk_name="fk_notifications_user_id_users"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.create_index("ix_notifications_user_unread", "notifications", ["user_id", "is_read"])
    op.create_index(
        "ix_notifications_user_title_created", "notifications", ["user_id", "title", "created_at"]
    )

    # --- Billing ---
    plans = op.create_table(
        "subscription_plans",
        _id(),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="eur"),
        sa.Column("interval", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("code", name="uq_subscription_plans_code"),
        sa.CheckConstraint("interval IN ('month', 'year', 'lifetime')", name="ck_subscription_plans_interval_valid"),
        sa.CheckConstraint("price_cents >= 0", name="ck_subscription_plans_price_non_negative"),
    )

    op.create_table(
        "subscriptions",
        _id(),
        _user_fk(fk_name="fk_subscriptions_user_id_users"),
        sa.Column(
            "plan_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("subscription_plans.id", ondelete="RESTRICT", name="fk_subscriptions_plan_id_subscription_plans"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("auto_renew", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _created_at("updated_at"),
        sa.CheckConstraint("status IN ('active', 'canceled', 'expired')", name="ck_subscriptions_status_valid"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index("ix_subscriptions_created_at", "subscriptions", ["created_at"])
    op.create_index("ix_subscriptions_user_status", "subscriptions", ["user_id", "status"])

    op.create_table(
        "payments",
        _id(),
        _user_fk(fk_name="fk_payments_user_id_users"),
        sa.Column(
            "plan_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("subscription_plans.id", ondelete="RESTRICT", name="fk_payments_plan_id_subscription_plans"),
            nullable=False,
        ),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("provider_session_id", sa.String(length=255), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint("provider_session_id", name="uq_payments_provider_session_id"),
        sa.CheckConstraint("status IN ('pending', 'paid', 'failed')", name="ck_payments_status_valid"),
        sa.CheckConstraint("provider IN ('stripe', 'paysafecard')", name="ck_payments_provider_valid"),
    )
    op.create_index("ix_payments_user_id", "payments", ["user_id"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    op.create_table(
        "subscribers",
        _id(),
        _user_fk(fk_name="fk_subscribers_user_id_users"),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("subscribed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("subscription_tier", sa.String(length=128), nullable=True),
        sa.Column("subscription_end", sa.DateTime(timezone=True), nullable=True),
        _created_at("updated_at"),
        sa.UniqueConstraint("user_id", name="uq_subscribers_user_id"),
    )
    op.create_index("ix_subscribers_stripe_customer_id", "subscribers", ["stripe_customer_id"])

    op.create_table(
        "billing_settings",
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_billing_settings_user_id_users"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("preferred_method", sa.String(length=32), nullable=True),
        sa.Column("card_auto_renew", sa.Boolean(), nullable=True),
        sa.Column("paypal_auto_renew", sa.Boolean(), nullable=True),
        sa.Column("paysafecard_auto_renew", sa.Boolean(), nullable=True),
        sa.Column("notify_before_days", sa.Integer(), nullable=False, server_default="2"),
        sa.CheckConstraint("notify_before_days >= 0", name="ck_billing_settings_notify_non_negative"),
    )

    # --- Plan seed (prices are placeholders; edit per deployment) ---
    op.bulk_insert(
        plans,
        [
            {"id": uuid.uuid4(), "code": "basic_monthly", "name": "Essentiel", "price_cents": 499,
             "currency": "eur", "interval": "month", "is_active": True},
            {"id": uuid.uuid4(), "code": "premium_monthly", "name": "Premium", "price_cents": 999,
             "currency": "eur", "interval": "month", "is_active": True},
            {"id": uuid.uuid4(), "code": "lifetime", "name": "À vie", "price_cents": 14999,
             "currency": "eur", "interval": "lifetime", "is_active": True},
        ],
    )


def downgrade() -> None:
    for table in (
        "billing_settings",
        "subscribers",
        "payments",
        "subscriptions",
        "subscription_plans",
        "notifications",
        "watch_history",
        "ratings",
        "favorites",
        "categories",
        "subtitles",
        "episodes",
        "videos",
        "password_resets",
        "email_verification_codes",
        "users",
    ):
        op.drop_table(table)
