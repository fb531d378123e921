"""Ratings exchanged once per order and direction, feeding the reviewee's credit score."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.errors import Conflict, Forbidden, NotFound
from taskmarket.models import Enterprise, Individual, Order, OrderStatus, Review, ReviewType, Task

logger = logging.getLogger(__name__)


async def _refresh_credit_score(session: AsyncSession, review_type: ReviewType, reviewee_id: int) -> None:
    avg = await session.scalar(
        select(func.avg(Review.rating)).where(Review.reviewee_id == reviewee_id, Review.review_type == review_type.value)
    )
    if avg is None:
        return
    score = Decimal(str(avg)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    model = Individual if review_type == ReviewType.enterprise_to_individual else Enterprise
    await session.execute(
        update(model)
        .where(model.user_id == reviewee_id)
        .values(credit_score=score)
        .execution_options(synchronize_session=False)
    )


async def add_review(
    session: AsyncSession,
    order: Order,
    review_type: ReviewType,
    reviewer_id: int,
    reviewee_id: int,
    rating: int,
    comment: str | None = None,
) -> Review:
    """Record a review inside the caller's transaction. Does not commit."""
    existing = await session.execute(
        select(Review.id).where(Review.order_id == order.id, Review.review_type == review_type.value).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict("Order already reviewed")
    review = Review(
        order_id=order.id,
        reviewer_id=reviewer_id,
        reviewee_id=reviewee_id,
        review_type=review_type.value,
        rating=rating,
        comment=comment,
    )
    session.add(review)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("Order already reviewed")
    await _refresh_credit_score(session, review_type, reviewee_id)
    logger.info(f"[reviews] {review_type.value} on order {order.id}: {rating}")
    return review


async def review_enterprise(
    session: AsyncSession, individual: Individual, task_id: int, rating: int, comment: str | None = None
) -> Review:
    """Worker rates the enterprise after the order is completed."""
    res = await session.execute(
        select(Order, Enterprise.user_id)
        .join(Task, Task.id == Order.task_id)
        .join(Enterprise, Enterprise.id == Task.enterprise_id)
        .where(Order.task_id == task_id)
        .limit(1)
    )
    row = res.first()
    if row is None:
        raise NotFound("Order not found")
    order, enterprise_user_id = row
    if order.individual_id != individual.id:
        raise Forbidden("Order belongs to another worker")
    if order.status != OrderStatus.completed.value:
        raise Conflict("Order is not completed")
    try:
        review = await add_review(
            session,
            order,
            ReviewType.individual_to_enterprise,
            reviewer_id=individual.user_id,
            reviewee_id=enterprise_user_id,
            rating=rating,
            comment=comment,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await session.refresh(review)
    return review


async def list_received(session: AsyncSession, user_id: int, limit: int = 50) -> list[Review]:
    res = await session.execute(
        select(Review)
        .where(Review.reviewee_id == user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
    )
    return list(res.scalars().all())
