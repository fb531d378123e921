"""
Task/Order state machine.

Task:  pending -> approved -> in_progress -> submitted -> completed
                                  ^              |
                                  +--- reject ---+
       pending -> rejected; pending|approved -> cancelled
Order: in_progress -> submitted -> completed, back to in_progress on reject.

Each transition is a conditional UPDATE (``WHERE status IN (...)``) so a
row that moved underneath the caller is detected by its row count and
reported as a conflict. The Task and its Order change inside one session
transaction and are committed together.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.errors import Conflict, Forbidden, NotFound
from taskmarket.models import (
    Enterprise,
    Individual,
    Order,
    OrderStatus,
    ReviewType,
    Task,
    TaskStatus,
    TransactionType,
)
from taskmarket.services import ledger, reviews
from taskmarket.services.tasks import get_order_for_task, get_owned_task, get_task

logger = logging.getLogger(__name__)

TASK_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.pending: {TaskStatus.approved, TaskStatus.rejected, TaskStatus.cancelled},
    TaskStatus.approved: {TaskStatus.in_progress, TaskStatus.cancelled},
    TaskStatus.in_progress: {TaskStatus.submitted},
    TaskStatus.submitted: {TaskStatus.completed, TaskStatus.in_progress},
    TaskStatus.completed: set(),
    TaskStatus.rejected: set(),
    TaskStatus.cancelled: set(),
}

ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.in_progress: {OrderStatus.submitted},
    OrderStatus.submitted: {OrderStatus.completed, OrderStatus.in_progress, OrderStatus.rejected},
    OrderStatus.rejected: {OrderStatus.in_progress, OrderStatus.submitted},
    OrderStatus.completed: set(),
}


def can_transition(current: str, target: str, transitions: dict = TASK_TRANSITIONS) -> bool:
    table = {source.value: {t.value for t in targets} for source, targets in transitions.items()}
    return target in table.get(current, set())


async def _move_task(
    session: AsyncSession, task_id: int, from_: tuple[TaskStatus, ...], target: TaskStatus, message: str
) -> None:
    sources = [source.value for source in from_ if target in TASK_TRANSITIONS[source]]
    res = await session.execute(
        update(Task)
        .where(Task.id == task_id, Task.status.in_(sources))
        .values(status=target.value, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise Conflict(message)


async def _move_order(
    session: AsyncSession,
    order_id: int,
    from_: tuple[OrderStatus, ...],
    target: OrderStatus,
    message: str,
    **values,
) -> None:
    sources = [source.value for source in from_ if target in ORDER_TRANSITIONS[source]]
    res = await session.execute(
        update(Order)
        .where(Order.id == order_id, Order.status.in_(sources))
        .values(status=target.value, updated_at=func.now(), **values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise Conflict(message)


async def _commit(session: AsyncSession, *objects) -> None:
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    for obj in objects:
        await session.refresh(obj)


def settlement_amount(task: Task, view_count: int | None = None) -> Decimal:
    """Budget for ordinary tasks; base price plus per-thousand-view pricing for video tasks."""
    if task.is_video_task and task.base_price is not None and task.price_per_thousand_views is not None:
        views = Decimal(view_count or 0)
        return ledger.to_money(task.base_price + views / 1000 * task.price_per_thousand_views)
    return ledger.to_money(task.budget)


async def accept_task(session: AsyncSession, individual: Individual, task_id: int) -> Order:
    task = await get_task(session, task_id)
    owner_user_id = await session.scalar(select(Enterprise.user_id).where(Enterprise.id == task.enterprise_id))
    if owner_user_id == individual.user_id:
        raise Forbidden("Cannot accept your own task")

    try:
        await _move_task(
            session, task.id, (TaskStatus.approved,), TaskStatus.in_progress, "Task is no longer available"
        )
        order = Order(task_id=task.id, individual_id=individual.id, status=OrderStatus.in_progress.value)
        session.add(order)
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise Conflict("Task is no longer available")
    except Exception:
        await session.rollback()
        raise
    await _commit(session, order, task)
    logger.info(f"[workflow] individual {individual.id} accepted task {task.id} (order {order.id})")
    return order


async def submit_result(
    session: AsyncSession,
    individual: Individual,
    task_id: int,
    content: str,
    attachments: list[str] | None = None,
) -> Order:
    res = await session.execute(
        select(Order).where(Order.task_id == task_id, Order.individual_id == individual.id).limit(1)
    )
    order = res.scalar_one_or_none()
    if order is None:
        raise NotFound("Order not found")

    try:
        await _move_order(
            session,
            order.id,
            (OrderStatus.in_progress, OrderStatus.rejected),
            OrderStatus.submitted,
            "Order is not awaiting submission",
            submit_content=content,
            submit_attachments=attachments or [],
            submit_time=datetime.now(timezone.utc),
        )
        await _move_task(
            session, task_id, (TaskStatus.in_progress,), TaskStatus.submitted, "Task is not awaiting submission"
        )
    except Exception:
        await session.rollback()
        raise
    await _commit(session, order)
    logger.info(f"[workflow] order {order.id} submitted for task {task_id}")
    return order


async def _submitted_order(session: AsyncSession, enterprise: Enterprise, task_id: int) -> tuple[Task, Order]:
    task = await get_owned_task(session, enterprise, task_id)
    order = await get_order_for_task(session, task.id)
    if order is None:
        raise NotFound("Order not found")
    if order.status != OrderStatus.submitted.value:
        raise Conflict("Order is not awaiting review")
    return task, order


async def _refresh_success_rate(session: AsyncSession, individual_id: int) -> None:
    """Completed share of settled orders; orders still in flight do not count."""
    settled_statuses = [OrderStatus.completed.value, OrderStatus.rejected.value]
    settled, completed = (
        await session.execute(
            select(
                func.coalesce(func.sum(case((Order.status.in_(settled_statuses), 1), else_=0)), 0),
                func.coalesce(func.sum(case((Order.status == OrderStatus.completed.value, 1), else_=0)), 0),
            ).where(Order.individual_id == individual_id)
        )
    ).one()
    rate = ledger.to_money(Decimal(completed) * 100 / Decimal(settled)) if settled else Decimal("100.00")
    await session.execute(
        update(Individual)
        .where(Individual.id == individual_id)
        .values(completed_tasks=completed, success_rate=rate)
        .execution_options(synchronize_session=False)
    )


async def approve_submission(
    session: AsyncSession,
    enterprise: Enterprise,
    task_id: int,
    view_count: int | None = None,
    rating: int | None = None,
    comment: str | None = None,
) -> Order:
    """Accept the delivered work, settle payment and optionally rate the worker."""
    task, order = await _submitted_order(session, enterprise, task_id)
    amount = settlement_amount(task, view_count)
    worker_user_id = await session.scalar(select(Individual.user_id).where(Individual.id == order.individual_id))

    values = {"review_time": datetime.now(timezone.utc), "actual_amount": amount}
    if view_count is not None:
        values["view_count"] = view_count
    if comment:
        values["review_comment"] = comment
    try:
        await _move_order(
            session, order.id, (OrderStatus.submitted,), OrderStatus.completed, "Order is not awaiting review", **values
        )
        await _move_task(session, task.id, (TaskStatus.submitted,), TaskStatus.completed, "Task is not awaiting review")
        await ledger.apply_enterprise_delta(
            session,
            enterprise,
            TransactionType.pay,
            amount,
            related_id=order.id,
            description=f"Payment for task {task.id}",
            require_funds=True,
        )
        await ledger.record_income(
            session, worker_user_id, amount, related_id=order.id, description=f"Income from task {task.id}"
        )
        await _refresh_success_rate(session, order.individual_id)
        if rating is not None:
            await reviews.add_review(
                session,
                order,
                ReviewType.enterprise_to_individual,
                reviewer_id=enterprise.user_id,
                reviewee_id=worker_user_id,
                rating=rating,
                comment=comment,
            )
    except Exception:
        await session.rollback()
        raise
    await _commit(session, order, task)
    logger.info(f"[workflow] task {task.id} completed, order {order.id} settled at {amount}")
    return order


async def reject_submission(session: AsyncSession, enterprise: Enterprise, task_id: int, comment: str) -> Order:
    """Send the work back for rework. Both rows return to in_progress."""
    task, order = await _submitted_order(session, enterprise, task_id)
    try:
        await _move_order(
            session,
            order.id,
            (OrderStatus.submitted,),
            OrderStatus.in_progress,
            "Order is not awaiting review",
            review_comment=comment,
            review_time=datetime.now(timezone.utc),
        )
        await _move_task(
            session, task.id, (TaskStatus.submitted,), TaskStatus.in_progress, "Task is not awaiting review"
        )
    except Exception:
        await session.rollback()
        raise
    await _commit(session, order, task)
    logger.info(f"[workflow] task {task.id} sent back for rework")
    return order


async def cancel_task(session: AsyncSession, enterprise: Enterprise, task_id: int) -> Task:
    task = await get_owned_task(session, enterprise, task_id)
    try:
        await _move_task(
            session,
            task.id,
            (TaskStatus.pending, TaskStatus.approved),
            TaskStatus.cancelled,
            "Task can no longer be cancelled",
        )
    except Exception:
        await session.rollback()
        raise
    await _commit(session, task)
    logger.info(f"[workflow] task {task.id} cancelled by enterprise {enterprise.id}")
    return task


async def moderate_task(session: AsyncSession, task_id: int, approve: bool) -> Task:
    """Admin review of a pending task."""
    task = await get_task(session, task_id)
    target = TaskStatus.approved if approve else TaskStatus.rejected
    if not can_transition(task.status, target.value):
        raise Conflict("Task is not pending review")
    try:
        await _move_task(session, task.id, (TaskStatus.pending,), target, "Task is not pending review")
    except Exception:
        await session.rollback()
        raise
    await _commit(session, task)
    logger.info(f"[workflow] task {task.id} moderated -> {target.value}")
    return task
