from __future__ import annotations

from fastapi import APIRouter

from .schemas import ApiResponse, Message
from .security import CurrentAdmin, SessionDep
from .services import workflow

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/tasks/{task_id}/approve", response_model=ApiResponse[Message])
async def approve_task(task_id: int, admin: CurrentAdmin, session: SessionDep):
    await workflow.moderate_task(session, task_id, approve=True)
    return ApiResponse(data=Message(message="Task approved"))


@router.post("/tasks/{task_id}/reject", response_model=ApiResponse[Message])
async def reject_task(task_id: int, admin: CurrentAdmin, session: SessionDep):
    await workflow.moderate_task(session, task_id, approve=False)
    return ApiResponse(data=Message(message="Task rejected"))
