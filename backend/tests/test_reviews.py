from decimal import Decimal

import pytest

from taskmarket.errors import Conflict, Forbidden
from taskmarket.services import reviews, workflow


async def _completed_task(session, enterprise, worker, make_task, rating=None, title="Task"):
    task = await make_task(enterprise, title=title)
    await workflow.accept_task(session, worker, task.id)
    await workflow.submit_result(session, worker, task.id, "done")
    await workflow.approve_submission(session, enterprise, task.id, rating=rating)
    return task


@pytest.mark.asyncio
async def test_worker_credit_score_is_mean_of_ratings(session, make_enterprise, make_individual, make_task):
    enterprise = await make_enterprise(funds="1000.00")
    worker = await make_individual()

    await _completed_task(session, enterprise, worker, make_task, rating=4, title="First")
    await _completed_task(session, enterprise, worker, make_task, rating=5, title="Second")

    await session.refresh(worker)
    assert Decimal(str(worker.credit_score)) == Decimal("4.5")
    assert worker.completed_tasks == 2

    received = await reviews.list_received(session, worker.user_id)
    assert sorted(r.rating for r in received) == [4, 5]


@pytest.mark.asyncio
async def test_worker_reviews_enterprise_once(session, make_enterprise, make_individual, make_task):
    enterprise = await make_enterprise(funds="500.00")
    worker = await make_individual()
    task = await _completed_task(session, enterprise, worker, make_task)

    review = await reviews.review_enterprise(session, worker, task.id, 3, "Slow feedback")
    assert review.review_type == "individual_to_enterprise"
    assert review.reviewee_id == enterprise.user_id

    await session.refresh(enterprise)
    assert Decimal(str(enterprise.credit_score)) == Decimal("3.0")

    with pytest.raises(Conflict):
        await reviews.review_enterprise(session, worker, task.id, 5)


@pytest.mark.asyncio
async def test_review_requires_completed_own_order(session, make_enterprise, make_individual, make_task):
    enterprise = await make_enterprise()
    worker = await make_individual("worker-a")
    outsider = await make_individual("worker-b")
    task = await make_task(enterprise)
    await workflow.accept_task(session, worker, task.id)

    with pytest.raises(Conflict):
        await reviews.review_enterprise(session, worker, task.id, 5)
    with pytest.raises(Forbidden):
        await reviews.review_enterprise(session, outsider, task.id, 5)
