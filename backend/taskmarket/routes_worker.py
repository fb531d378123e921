from __future__ import annotations

from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Query, status

from .models import LedgerAccount, OrderStatus, TaskType
from .schemas import (
    ApiResponse,
    MarketTaskFilter,
    MarketTaskItem,
    Message,
    MyTaskFilter,
    MyTaskItem,
    OrderCreated,
    Page,
    ReviewRead,
    ReviewRequest,
    SubmitRequest,
    TaskDetail,
    TransactionRead,
    WorkerProfileRead,
    WorkerProfileUpdate,
)
from .security import CurrentIndividual, SessionDep
from .services import ledger, reviews, tasks as task_service, workflow
from .services import users as user_service

router = APIRouter(prefix="/api/worker", tags=["worker"])


async def _profile(session, individual) -> WorkerProfileRead:
    user = await user_service.get_user(session, individual.user_id)
    return WorkerProfileRead(
        id=individual.id,
        name=user.name if user else None,
        real_name=individual.real_name,
        skills=individual.skills or [],
        experience=individual.experience,
        portfolio=individual.portfolio or [],
        credit_score=individual.credit_score,
        completed_tasks=individual.completed_tasks,
        success_rate=individual.success_rate,
        earnings=await ledger.individual_earnings(session, individual.user_id),
    )


@router.get("/market", response_model=ApiResponse[Page[MarketTaskItem]])
async def get_market_tasks(
    session: SessionDep,
    type_: TaskType | Literal["all"] | None = Query(default=None, alias="type"),
    sub_type: str | None = Query(default=None, alias="subType"),
    keyword: str | None = None,
    min_budget: Decimal | None = Query(default=None, ge=0, alias="minBudget"),
    max_budget: Decimal | None = Query(default=None, ge=0, alias="maxBudget"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100, alias="pageSize"),
):
    """Open tasks across all enterprises. No login required."""
    filters = MarketTaskFilter(
        type=type_,
        sub_type=sub_type,
        keyword=keyword,
        min_budget=min_budget,
        max_budget=max_budget,
        page=page,
        page_size=page_size,
    )
    result = await task_service.list_market_tasks(session, filters)
    return ApiResponse(data=Page(**vars(result)))


@router.get("/tasks", response_model=ApiResponse[Page[MyTaskItem]])
async def get_my_tasks(
    individual: CurrentIndividual,
    session: SessionDep,
    status_: OrderStatus = Query(default=OrderStatus.in_progress, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100, alias="pageSize"),
):
    filters = MyTaskFilter(status=status_, page=page, page_size=page_size)
    result = await task_service.list_my_tasks(session, individual, filters)
    return ApiResponse(data=Page(**vars(result)))


@router.get("/tasks/{task_id}", response_model=ApiResponse[TaskDetail])
async def get_task_detail(task_id: int, individual: CurrentIndividual, session: SessionDep):
    return ApiResponse(data=await task_service.worker_task_detail(session, individual, task_id))


@router.post("/tasks/{task_id}/accept", response_model=ApiResponse[OrderCreated], status_code=status.HTTP_201_CREATED)
async def accept_task(task_id: int, individual: CurrentIndividual, session: SessionDep):
    order = await workflow.accept_task(session, individual, task_id)
    return ApiResponse(data=OrderCreated(order_id=order.id, message="Task accepted"))


@router.post("/tasks/{task_id}/submit", response_model=ApiResponse[Message])
async def submit_result(task_id: int, data: SubmitRequest, individual: CurrentIndividual, session: SessionDep):
    await workflow.submit_result(session, individual, task_id, data.result, data.attachments)
    return ApiResponse(data=Message(message="Result submitted"))


@router.post("/tasks/{task_id}/review", response_model=ApiResponse[ReviewRead], status_code=status.HTTP_201_CREATED)
async def review_enterprise(task_id: int, data: ReviewRequest, individual: CurrentIndividual, session: SessionDep):
    review = await reviews.review_enterprise(session, individual, task_id, data.rating, data.comment)
    return ApiResponse(data=ReviewRead.model_validate(review))


@router.get("/profile", response_model=ApiResponse[WorkerProfileRead])
async def get_profile(individual: CurrentIndividual, session: SessionDep):
    return ApiResponse(data=await _profile(session, individual))


@router.patch("/profile", response_model=ApiResponse[WorkerProfileRead])
async def update_profile(data: WorkerProfileUpdate, individual: CurrentIndividual, session: SessionDep):
    individual = await user_service.update_individual_profile(
        session,
        individual,
        real_name=data.real_name,
        skills=data.skills,
        experience=data.experience,
        portfolio=data.portfolio,
    )
    return ApiResponse(data=await _profile(session, individual))


@router.get("/reviews", response_model=ApiResponse[list[ReviewRead]])
async def get_reviews(individual: CurrentIndividual, session: SessionDep):
    rows = await reviews.list_received(session, individual.user_id)
    return ApiResponse(data=[ReviewRead.model_validate(row) for row in rows])


@router.get("/transactions", response_model=ApiResponse[list[TransactionRead]])
async def get_transactions(
    individual: CurrentIndividual, session: SessionDep, limit: int = Query(default=50, ge=1, le=200)
):
    rows = await ledger.list_transactions(session, individual.user_id, LedgerAccount.individual, limit)
    return ApiResponse(data=[TransactionRead.model_validate(row) for row in rows])
