from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query, status

from .models import LedgerAccount, TaskStatus
from .schemas import (
    AmountRequest,
    ApiResponse,
    ApproveRequest,
    BalanceRead,
    EnterpriseProfileRead,
    EnterpriseProfileUpdate,
    EnterpriseStats,
    EnterpriseTaskFilter,
    Message,
    Page,
    RejectRequest,
    TaskCreate,
    TaskCreated,
    TaskDetail,
    TaskListItem,
    TransactionRead,
)
from .security import CurrentEnterprise, SessionDep
from .services import ledger, tasks as task_service, workflow
from .services import users as user_service

router = APIRouter(prefix="/api/enterprise", tags=["enterprise"])


async def _profile(session, enterprise) -> EnterpriseProfileRead:
    stats = await task_service.enterprise_stats(session, enterprise)
    return EnterpriseProfileRead(
        id=enterprise.id,
        name=enterprise.company_name,
        license=enterprise.license,
        contact=enterprise.contact,
        balance=stats.balance,
        credit_score=enterprise.credit_score,
        total_tasks=enterprise.total_tasks,
        completed_tasks=stats.completed,
    )


@router.get("/stats", response_model=ApiResponse[EnterpriseStats])
async def get_stats(enterprise: CurrentEnterprise, session: SessionDep):
    return ApiResponse(data=await task_service.enterprise_stats(session, enterprise))


@router.get("/tasks/recent", response_model=ApiResponse[list[TaskListItem]])
async def get_recent_tasks(
    enterprise: CurrentEnterprise,
    session: SessionDep,
    limit: int = Query(default=task_service.RECENT_TASKS_DEFAULT, ge=1, le=50),
):
    return ApiResponse(data=await task_service.recent_tasks(session, enterprise, limit))


@router.get("/tasks", response_model=ApiResponse[Page[TaskListItem]])
async def get_tasks(
    enterprise: CurrentEnterprise,
    session: SessionDep,
    status_: TaskStatus | Literal["all"] | None = Query(default=None, alias="status"),
    keyword: str | None = None,
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100, alias="pageSize"),
):
    filters = EnterpriseTaskFilter(
        status=status_, keyword=keyword, date_from=date_from, date_to=date_to, page=page, page_size=page_size
    )
    result = await task_service.list_enterprise_tasks(session, enterprise, filters)
    return ApiResponse(data=Page(**vars(result)))


@router.post("/tasks", response_model=ApiResponse[TaskCreated], status_code=status.HTTP_201_CREATED)
async def create_task(data: TaskCreate, enterprise: CurrentEnterprise, session: SessionDep):
    task = await task_service.create_task(session, enterprise, data)
    return ApiResponse(data=TaskCreated(task_id=task.id, message="Task published"))


@router.get("/tasks/{task_id}", response_model=ApiResponse[TaskDetail])
async def get_task_detail(task_id: int, enterprise: CurrentEnterprise, session: SessionDep):
    return ApiResponse(data=await task_service.enterprise_task_detail(session, enterprise, task_id))


@router.post("/tasks/{task_id}/approve", response_model=ApiResponse[Message])
async def approve_task(task_id: int, data: ApproveRequest, enterprise: CurrentEnterprise, session: SessionDep):
    await workflow.approve_submission(
        session, enterprise, task_id, view_count=data.view_count, rating=data.rating, comment=data.comment
    )
    return ApiResponse(data=Message(message="Task accepted"))


@router.post("/tasks/{task_id}/reject", response_model=ApiResponse[Message])
async def reject_task(task_id: int, data: RejectRequest, enterprise: CurrentEnterprise, session: SessionDep):
    await workflow.reject_submission(session, enterprise, task_id, data.comment)
    return ApiResponse(data=Message(message="Task sent back for rework"))


@router.post("/tasks/{task_id}/cancel", response_model=ApiResponse[Message])
async def cancel_task(task_id: int, enterprise: CurrentEnterprise, session: SessionDep):
    await workflow.cancel_task(session, enterprise, task_id)
    return ApiResponse(data=Message(message="Task cancelled"))


@router.get("/profile", response_model=ApiResponse[EnterpriseProfileRead])
async def get_profile(enterprise: CurrentEnterprise, session: SessionDep):
    return ApiResponse(data=await _profile(session, enterprise))


@router.patch("/profile", response_model=ApiResponse[EnterpriseProfileRead])
async def update_profile(data: EnterpriseProfileUpdate, enterprise: CurrentEnterprise, session: SessionDep):
    enterprise = await user_service.update_enterprise_profile(
        session, enterprise, company_name=data.company_name, license=data.license, contact=data.contact
    )
    return ApiResponse(data=await _profile(session, enterprise))


@router.post("/recharge", response_model=ApiResponse[BalanceRead])
async def recharge(data: AmountRequest, enterprise: CurrentEnterprise, session: SessionDep):
    tx = await ledger.recharge(session, enterprise, data.amount)
    return ApiResponse(data=BalanceRead(balance=tx.balance, transaction_id=tx.id))


@router.post("/withdraw", response_model=ApiResponse[BalanceRead])
async def withdraw(data: AmountRequest, enterprise: CurrentEnterprise, session: SessionDep):
    tx = await ledger.withdraw(session, enterprise, data.amount)
    return ApiResponse(data=BalanceRead(balance=tx.balance, transaction_id=tx.id))


@router.get("/transactions", response_model=ApiResponse[list[TransactionRead]])
async def get_transactions(
    enterprise: CurrentEnterprise, session: SessionDep, limit: int = Query(default=50, ge=1, le=200)
):
    rows = await ledger.list_transactions(session, enterprise.user_id, LedgerAccount.enterprise, limit)
    return ApiResponse(data=[TransactionRead.model_validate(row) for row in rows])
