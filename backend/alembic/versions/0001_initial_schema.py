"""create task market schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("open_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("union_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("login_method", sa.String(length=64), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.Column("last_signed_in", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "role IS NULL OR role IN ('enterprise', 'individual', 'admin')", name="ck_users_role"
        ),
    )

    op.create_table(
        "enterprises",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("license", sa.String(length=255), nullable=True),
        sa.Column("contact", sa.String(length=100), nullable=True),
        sa.Column("balance", sa.Numeric(10, 2), nullable=False, server_default="0.00"),
        sa.Column("credit_score", sa.Numeric(3, 1), nullable=False, server_default="5.0"),
        sa.Column("total_tasks", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "individuals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("real_name", sa.String(length=100), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=True),
        sa.Column("experience", sa.Text(), nullable=True),
        sa.Column("portfolio", sa.JSON(), nullable=True),
        sa.Column("credit_score", sa.Numeric(3, 1), nullable=False, server_default="5.0"),
        sa.Column("completed_tasks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success_rate", sa.Numeric(5, 2), nullable=False, server_default="100.00"),
        *_timestamps(),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("enterprise_id", sa.Integer(), sa.ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("sub_type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("requirements", sa.Text(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("budget", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_video_task", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_per_thousand_views", sa.Numeric(10, 2), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.CheckConstraint("type IN ('report', 'video', 'labeling')", name="ck_tasks_type"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'in_progress', 'submitted', 'completed', 'rejected', 'cancelled')",
            name="ck_tasks_status",
        ),
    )
    op.create_index("ix_tasks_enterprise_id", "tasks", ["enterprise_id"])
    op.create_index("ix_tasks_status_created", "tasks", ["status", "created_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "individual_id", sa.Integer(), sa.ForeignKey("individuals.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="in_progress"),
        sa.Column("submit_content", sa.Text(), nullable=True),
        sa.Column("submit_attachments", sa.JSON(), nullable=True),
        sa.Column("submit_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_comment", sa.Text(), nullable=True),
        sa.Column("review_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("task_id", name="uq_orders_task_id"),
        sa.CheckConstraint(
            "status IN ('in_progress', 'submitted', 'completed', 'rejected')", name="ck_orders_status"
        ),
    )
    op.create_index("ix_orders_individual_id", "orders", ["individual_id"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reviewer_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reviewee_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("review_type", sa.String(length=32), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("order_id", "review_type", name="uq_reviews_order_type"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
        sa.CheckConstraint(
            "review_type IN ('enterprise_to_individual', 'individual_to_enterprise')", name="ck_reviews_type"
        ),
    )
    op.create_index("ix_reviews_reviewee_id", "reviews", ["reviewee_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("balance", sa.Numeric(10, 2), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "type IN ('recharge', 'freeze', 'unfreeze', 'pay', 'income', 'withdraw')", name="ck_transactions_type"
        ),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_reviews_reviewee_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_orders_individual_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_tasks_status_created", table_name="tasks")
    op.drop_index("ix_tasks_enterprise_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("individuals")
    op.drop_table("enterprises")
    op.drop_table("users")
