"""
Task queries and creation.

Listings are scoped by the caller's profile id, which the API layer derives
from the session token. Keyword search is a substring match over title and
description, case sensitivity following the database collation.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket import schemas
from taskmarket.errors import NotFound
from taskmarket.models import Enterprise, Individual, Order, Task, TaskStatus, TaskType, User
from taskmarket.services.ledger import to_money
from taskmarket.services.pagination import PageResult, fetch_page

logger = logging.getLogger(__name__)

RECENT_TASKS_DEFAULT = 5

_worker_name = func.coalesce(Individual.real_name, User.name).label("worker_name")


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _keyword_clause(keyword: str):
    return Task.title.contains(keyword, autoescape=True) | Task.description.contains(keyword, autoescape=True)


async def create_task(session: AsyncSession, enterprise: Enterprise, data: schemas.TaskCreate) -> Task:
    """Publish a task for ``enterprise``. New tasks go straight to the market."""
    task = Task(
        enterprise_id=enterprise.id,
        type=data.type.value,
        sub_type=data.sub_type,
        title=data.title,
        description=data.description,
        requirements=data.requirements or "",
        attachments=data.attachments or [],
        budget=to_money(data.budget),
        is_video_task=data.is_video_task,
        base_price=to_money(data.base_price) if data.base_price is not None else None,
        price_per_thousand_views=(
            to_money(data.price_per_thousand_views) if data.price_per_thousand_views is not None else None
        ),
        deadline=_utc(data.deadline),
        status=TaskStatus.approved.value,
    )
    session.add(task)
    enterprise.total_tasks = (enterprise.total_tasks or 0) + 1
    session.add(enterprise)
    await session.commit()
    await session.refresh(task)
    logger.info(f"[tasks] enterprise {enterprise.id} published task {task.id} ({task.type}/{task.sub_type})")
    return task


async def get_task(session: AsyncSession, task_id: int) -> Task:
    task = await session.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


async def get_owned_task(session: AsyncSession, enterprise: Enterprise, task_id: int) -> Task:
    task = await session.get(Task, task_id)
    if task is None or task.enterprise_id != enterprise.id:
        raise NotFound("Task not found")
    return task


async def get_order_for_task(session: AsyncSession, task_id: int) -> Order | None:
    res = await session.execute(select(Order).where(Order.task_id == task_id).limit(1))
    return res.scalar_one_or_none()


async def enterprise_stats(session: AsyncSession, enterprise: Enterprise) -> schemas.EnterpriseStats:
    res = await session.execute(
        select(Task.status, func.count(Task.id)).where(Task.enterprise_id == enterprise.id).group_by(Task.status)
    )
    by_status = dict(res.all())
    balance = await session.scalar(select(Enterprise.balance).where(Enterprise.id == enterprise.id))
    return schemas.EnterpriseStats(
        pending_review=by_status.get(TaskStatus.submitted.value, 0),
        in_progress=by_status.get(TaskStatus.in_progress.value, 0),
        completed=by_status.get(TaskStatus.completed.value, 0),
        total=sum(by_status.values()),
        balance=to_money(balance or 0),
        name=enterprise.company_name,
    )


def _enterprise_tasks_stmt(enterprise: Enterprise):
    return (
        select(
            Task.id,
            Task.title,
            Task.type,
            Task.sub_type,
            Task.status,
            Task.budget,
            Task.deadline,
            Task.created_at,
            _worker_name,
        )
        .outerjoin(Order, Order.task_id == Task.id)
        .outerjoin(Individual, Individual.id == Order.individual_id)
        .outerjoin(User, User.id == Individual.user_id)
        .where(Task.enterprise_id == enterprise.id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )


async def recent_tasks(
    session: AsyncSession, enterprise: Enterprise, limit: int = RECENT_TASKS_DEFAULT
) -> list[schemas.TaskListItem]:
    res = await session.execute(_enterprise_tasks_stmt(enterprise).limit(limit))
    return [schemas.TaskListItem.model_validate(row, from_attributes=True) for row in res.all()]


async def list_enterprise_tasks(
    session: AsyncSession, enterprise: Enterprise, filters: schemas.EnterpriseTaskFilter
) -> PageResult[schemas.TaskListItem]:
    stmt = _enterprise_tasks_stmt(enterprise)
    if filters.status and filters.status != "all":
        stmt = stmt.where(Task.status == TaskStatus(filters.status).value)
    if filters.keyword:
        stmt = stmt.where(_keyword_clause(filters.keyword))
    if filters.date_from:
        stmt = stmt.where(Task.created_at >= _utc(filters.date_from))
    if filters.date_to:
        stmt = stmt.where(Task.created_at <= _utc(filters.date_to))

    page = await fetch_page(session, stmt, filters.page, filters.page_size)
    page.items = [schemas.TaskListItem.model_validate(row, from_attributes=True) for row in page.items]
    return page


async def list_market_tasks(session: AsyncSession, filters: schemas.MarketTaskFilter) -> PageResult[schemas.MarketTaskItem]:
    stmt = (
        select(
            Task.id,
            Task.title,
            Task.type,
            Task.sub_type,
            Task.description,
            Task.status,
            Task.budget,
            Task.deadline,
            Enterprise.company_name.label("enterprise_name"),
        )
        .outerjoin(Enterprise, Enterprise.id == Task.enterprise_id)
        .where(Task.status == TaskStatus.approved.value)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    if filters.type and filters.type != "all":
        stmt = stmt.where(Task.type == TaskType(filters.type).value)
    if filters.sub_type:
        stmt = stmt.where(Task.sub_type == filters.sub_type)
    if filters.keyword:
        stmt = stmt.where(_keyword_clause(filters.keyword))
    if filters.min_budget is not None:
        stmt = stmt.where(Task.budget >= filters.min_budget)
    if filters.max_budget is not None:
        stmt = stmt.where(Task.budget <= filters.max_budget)

    page = await fetch_page(session, stmt, filters.page, filters.page_size)
    page.items = [schemas.MarketTaskItem.model_validate(row, from_attributes=True) for row in page.items]
    return page


async def list_my_tasks(
    session: AsyncSession, individual: Individual, filters: schemas.MyTaskFilter
) -> PageResult[schemas.MyTaskItem]:
    stmt = (
        select(
            Task.id,
            Order.id.label("order_id"),
            Task.title,
            Task.type,
            Order.status,
            Task.status.label("task_status"),
            Task.budget,
            Task.deadline,
            Enterprise.company_name.label("enterprise_name"),
            Order.submit_content.label("submitted_result"),
            Order.review_comment,
            Order.actual_amount,
        )
        .join(Task, Task.id == Order.task_id)
        .outerjoin(Enterprise, Enterprise.id == Task.enterprise_id)
        .where(Order.individual_id == individual.id, Order.status == filters.status.value)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    page = await fetch_page(session, stmt, filters.page, filters.page_size)
    page.items = [schemas.MyTaskItem.model_validate(row, from_attributes=True) for row in page.items]
    return page


async def _task_detail(session: AsyncSession, task: Task, include_order: bool) -> schemas.TaskDetail:
    company_name = await session.scalar(select(Enterprise.company_name).where(Enterprise.id == task.enterprise_id))
    detail = schemas.TaskDetail(
        id=task.id,
        title=task.title,
        type=task.type,
        sub_type=task.sub_type,
        status=task.status,
        budget=task.budget,
        deadline=task.deadline,
        description=task.description,
        requirements=task.requirements,
        task_attachments=task.attachments or [],
        is_video_task=task.is_video_task,
        base_price=task.base_price,
        price_per_thousand_views=task.price_per_thousand_views,
        company_name=company_name,
    )
    if not include_order:
        return detail

    res = await session.execute(
        select(Order, _worker_name)
        .join(Individual, Individual.id == Order.individual_id)
        .join(User, User.id == Individual.user_id)
        .where(Order.task_id == task.id)
        .limit(1)
    )
    row = res.first()
    if row is None:
        return detail
    order, worker_name = row
    detail.order_id = order.id
    detail.order_status = order.status
    detail.accepted_by = worker_name
    detail.result = order.submit_content
    detail.attachments = order.submit_attachments or []
    detail.submit_time = order.submit_time
    detail.review_comment = order.review_comment
    detail.review_time = order.review_time
    detail.actual_amount = order.actual_amount
    return detail


async def enterprise_task_detail(session: AsyncSession, enterprise: Enterprise, task_id: int) -> schemas.TaskDetail:
    task = await get_owned_task(session, enterprise, task_id)
    return await _task_detail(session, task, include_order=True)


async def worker_task_detail(session: AsyncSession, individual: Individual, task_id: int) -> schemas.TaskDetail:
    """Market tasks are visible to any worker; order fields only to the one holding it."""
    task = await get_task(session, task_id)
    order = await get_order_for_task(session, task.id)
    holds_order = order is not None and order.individual_id == individual.id
    if not holds_order and task.status != TaskStatus.approved.value:
        raise NotFound("Task not found")
    return await _task_detail(session, task, include_order=holds_order)
