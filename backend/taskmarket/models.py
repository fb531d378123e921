from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class UserRole(str, Enum):
    enterprise = "enterprise"
    individual = "individual"
    admin = "admin"


class TaskType(str, Enum):
    report = "report"
    video = "video"
    labeling = "labeling"


class TaskStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    in_progress = "in_progress"
    submitted = "submitted"
    completed = "completed"
    rejected = "rejected"
    cancelled = "cancelled"


class OrderStatus(str, Enum):
    in_progress = "in_progress"
    submitted = "submitted"
    completed = "completed"
    rejected = "rejected"


class ReviewType(str, Enum):
    enterprise_to_individual = "enterprise_to_individual"
    individual_to_enterprise = "individual_to_enterprise"


class LedgerAccount(str, Enum):
    enterprise = "enterprise"
    individual = "individual"


class TransactionType(str, Enum):
    recharge = "recharge"
    freeze = "freeze"
    unfreeze = "unfreeze"
    pay = "pay"
    income = "income"
    withdraw = "withdraw"


def _enum_values(enum_cls: type[Enum]) -> str:
    return ", ".join(f"'{item.value}'" for item in enum_cls)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        sa.CheckConstraint(f"role IS NULL OR role IN ({_enum_values(UserRole)})", name="ck_users_role"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    open_id: Mapped[str] = mapped_column(sa.String(64), unique=True, nullable=False)
    union_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    name: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    email: Mapped[str | None] = mapped_column(sa.String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(sa.String(20), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    login_method: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    role: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )
    last_signed_in: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    enterprise: Mapped["Enterprise | None"] = relationship(back_populates="user", uselist=False)
    individual: Mapped["Individual | None"] = relationship(back_populates="user", uselist=False)


class Enterprise(Base):
    __tablename__ = "enterprises"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    license: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    contact: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    balance: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False, server_default="0.00", default=Decimal("0.00"))
    credit_score: Mapped[Decimal] = mapped_column(sa.Numeric(3, 1), nullable=False, server_default="5.0", default=Decimal("5.0"))
    total_tasks: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0", default=0)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    user: Mapped[User] = relationship(back_populates="enterprise")
    tasks: Mapped[list["Task"]] = relationship(back_populates="enterprise", passive_deletes=True)


class Individual(Base):
    __tablename__ = "individuals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    real_name: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    skills: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    experience: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    portfolio: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    credit_score: Mapped[Decimal] = mapped_column(sa.Numeric(3, 1), nullable=False, server_default="5.0", default=Decimal("5.0"))
    completed_tasks: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0", default=0)
    success_rate: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False, server_default="100.00", default=Decimal("100.00"))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    user: Mapped[User] = relationship(back_populates="individual")
    orders: Mapped[list["Order"]] = relationship(back_populates="individual", passive_deletes=True)


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint(f"type IN ({_enum_values(TaskType)})", name="ck_tasks_type"),
        sa.CheckConstraint(f"status IN ({_enum_values(TaskStatus)})", name="ck_tasks_status"),
        sa.Index("ix_tasks_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    enterprise_id: Mapped[int] = mapped_column(sa.ForeignKey("enterprises.id", ondelete="CASCADE"), index=True, nullable=False)
    type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    sub_type: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    requirements: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    attachments: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    budget: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    is_video_task: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false(), default=False)
    base_price: Mapped[Decimal | None] = mapped_column(sa.Numeric(10, 2), nullable=True)
    price_per_thousand_views: Mapped[Decimal | None] = mapped_column(sa.Numeric(10, 2), nullable=True)
    deadline: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default=TaskStatus.pending.value)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    enterprise: Mapped[Enterprise] = relationship(back_populates="tasks")
    order: Mapped["Order | None"] = relationship(back_populates="task", uselist=False)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        sa.UniqueConstraint("task_id", name="uq_orders_task_id"),
        sa.CheckConstraint(f"status IN ({_enum_values(OrderStatus)})", name="ck_orders_status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    individual_id: Mapped[int] = mapped_column(sa.ForeignKey("individuals.id", ondelete="CASCADE"), index=True, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default=OrderStatus.in_progress.value)
    submit_content: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    submit_attachments: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    submit_time: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    review_comment: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    review_time: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    actual_amount: Mapped[Decimal | None] = mapped_column(sa.Numeric(10, 2), nullable=True)
    view_count: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    task: Mapped[Task] = relationship(back_populates="order")
    individual: Mapped[Individual] = relationship(back_populates="orders")
    reviews: Mapped[list["Review"]] = relationship(back_populates="order", passive_deletes=True)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        sa.UniqueConstraint("order_id", "review_type", name="uq_reviews_order_type"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
        sa.CheckConstraint(f"review_type IN ({_enum_values(ReviewType)})", name="ck_reviews_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    reviewer_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reviewee_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    review_type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    rating: Mapped[int] = mapped_column(sa.Integer(), nullable=False)
    comment: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    order: Mapped[Order] = relationship(back_populates="reviews")


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        sa.CheckConstraint(f"type IN ({_enum_values(TransactionType)})", name="ck_transactions_type"),
        sa.CheckConstraint(f"account IN ({_enum_values(LedgerAccount)})", name="ck_transactions_account"),
        sa.Index("ix_transactions_user_account", "user_id", "account"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    account: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default=LedgerAccount.enterprise.value)
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    balance: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    related_id: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)
    description: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
