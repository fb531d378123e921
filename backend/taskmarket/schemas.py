from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import OrderStatus, TaskStatus, TaskType

T = TypeVar("T")

Money = Decimal


class CamelModel(BaseModel):
    """Wire models: camelCase on the wire, snake_case in Python, readable from ORM rows."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class Page(CamelModel, Generic[T]):
    items: list[T] = Field(alias="list")
    has_more: bool
    total: int
    page: int
    page_size: int


class Message(CamelModel):
    message: str


# Auth
class WechatUserInfo(CamelModel):
    nick_name: str | None = None
    avatar_url: str | None = None


class WechatLoginRequest(CamelModel):
    code: str = Field(min_length=1)
    user_info: WechatUserInfo | None = None


class DevLoginRequest(CamelModel):
    open_id: str = Field(min_length=1, max_length=64)
    name: str
    avatar_url: str | None = None


class SetRoleRequest(CamelModel):
    role: Literal["enterprise", "individual"]


class UserRead(CamelModel):
    id: int
    open_id: str
    name: str | None = None
    avatar_url: str | None = None
    role: str | None = None


class MeRead(UserRead):
    enterprise_id: int | None = None
    individual_id: int | None = None


class LoginResult(CamelModel):
    token: str
    user: UserRead


class RoleResult(CamelModel):
    role: str
    token: str


# Tasks
class TaskCreate(CamelModel):
    type: TaskType
    sub_type: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    requirements: str | None = None
    attachments: list[str] | None = None
    budget: Money = Field(gt=0, max_digits=10, decimal_places=2)
    deadline: datetime
    is_video_task: bool = False
    base_price: Money | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    price_per_thousand_views: Money | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def check_video_pricing(self) -> "TaskCreate":
        if self.is_video_task and (self.base_price is None or self.price_per_thousand_views is None):
            raise ValueError("video tasks require basePrice and pricePerThousandViews")
        return self


class TaskListItem(CamelModel):
    id: int
    title: str
    type: str
    sub_type: str
    status: str
    budget: Money
    deadline: datetime
    created_at: datetime | None = None
    worker_name: str | None = None


class MarketTaskItem(CamelModel):
    id: int
    title: str
    type: str
    sub_type: str
    description: str
    status: str
    budget: Money
    deadline: datetime
    enterprise_name: str | None = None


class MyTaskItem(CamelModel):
    id: int
    order_id: int
    title: str
    type: str
    status: str
    task_status: str
    budget: Money
    deadline: datetime
    enterprise_name: str | None = None
    submitted_result: str | None = None
    review_comment: str | None = None
    actual_amount: Money | None = None


class TaskDetail(CamelModel):
    id: int
    title: str
    type: str
    sub_type: str
    status: str
    budget: Money
    deadline: datetime
    description: str
    requirements: str | None = None
    task_attachments: list[str] = Field(default_factory=list)
    is_video_task: bool = False
    base_price: Money | None = None
    price_per_thousand_views: Money | None = None
    company_name: str | None = None
    order_id: int | None = None
    order_status: str | None = None
    accepted_by: str | None = None
    result: str | None = None
    attachments: list[str] = Field(default_factory=list)
    submit_time: datetime | None = None
    review_comment: str | None = None
    review_time: datetime | None = None
    actual_amount: Money | None = None


class TaskCreated(CamelModel):
    task_id: int
    message: str


class OrderCreated(CamelModel):
    order_id: int
    message: str


class ApproveRequest(CamelModel):
    view_count: int | None = Field(default=None, ge=0)
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = None


class RejectRequest(CamelModel):
    comment: str = Field(min_length=1)


class SubmitRequest(CamelModel):
    result: str = Field(min_length=1)
    attachments: list[str] | None = None


class ReviewRequest(CamelModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = None


class ReviewRead(CamelModel):
    id: int
    order_id: int
    review_type: str
    rating: int
    comment: str | None = None
    created_at: datetime | None = None


# Profiles and ledger
class EnterpriseStats(CamelModel):
    pending_review: int
    in_progress: int
    completed: int
    total: int
    balance: Money
    frozen_amount: Money = Decimal("0.00")
    name: str | None = None


class EnterpriseProfileRead(CamelModel):
    id: int
    name: str | None = None
    license: str | None = None
    contact: str | None = None
    balance: Money
    credit_score: Decimal
    total_tasks: int
    completed_tasks: int


class EnterpriseProfileUpdate(CamelModel):
    company_name: str | None = Field(default=None, max_length=255)
    license: str | None = Field(default=None, max_length=255)
    contact: str | None = Field(default=None, max_length=100)


class WorkerProfileRead(CamelModel):
    id: int
    name: str | None = None
    real_name: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience: str | None = None
    portfolio: list[str] = Field(default_factory=list)
    credit_score: Decimal
    completed_tasks: int
    success_rate: Decimal
    earnings: Money


class WorkerProfileUpdate(CamelModel):
    real_name: str | None = Field(default=None, max_length=100)
    skills: list[str] | None = None
    experience: str | None = None
    portfolio: list[str] | None = None

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [item.strip() for item in value if item and item.strip()]


class AmountRequest(CamelModel):
    amount: Money = Field(gt=0, max_digits=10, decimal_places=2)


class TransactionRead(CamelModel):
    id: int
    type: str
    amount: Money
    balance: Money
    related_id: int | None = None
    description: str | None = None
    created_at: datetime | None = None


class BalanceRead(CamelModel):
    balance: Money
    transaction_id: int


# Listing filters
class EnterpriseTaskFilter(BaseModel):
    status: TaskStatus | Literal["all"] | None = None
    keyword: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


class MarketTaskFilter(BaseModel):
    type: TaskType | Literal["all"] | None = None
    sub_type: str | None = None
    keyword: str | None = None
    min_budget: Money | None = None
    max_budget: Money | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


class MyTaskFilter(BaseModel):
    status: OrderStatus
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
