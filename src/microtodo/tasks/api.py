"""Task API routes.

Learn: Routes only translate HTTP to TaskService calls. Every route
needs a principal (the task service has no public API endpoints), and
the service is constructed per request already bound to that principal,
so there is no way to call it "as nobody".

- POST   /api/tasks          → create (owner = caller)
- GET    /api/tasks?userId=  → caller's tasks
- GET    /api/tasks/{id}     → one task (owner only)
- PUT    /api/tasks/{id}     → replace title/description/status (owner only)
- DELETE /api/tasks/{id}     → delete (owner only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from microtodo.auth.dependencies import get_principal
from microtodo.auth.verifier import Principal
from microtodo.db.engine import get_db
from microtodo.tasks.schemas import TaskRequest, TaskResponse
from microtodo.tasks.service import TaskService

router = APIRouter(prefix="/api/tasks")


def _task_svc(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
) -> TaskService:
    return TaskService(
        db,
        principal,
        identity=request.app.state.identity_client,
        conceal_foreign=request.app.state.settings.conceal_foreign_resources,
    )


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskRequest,
    request: Request,
    svc: TaskService = Depends(_task_svc),
):
    """Create a task owned by the caller, whatever userId the body says."""
    return await svc.create_task(
        title=body.title,
        description=body.description,
        status=body.status,
        requested_owner_id=body.user_id,
        request_id=getattr(request.state, "request_id", None),
    )


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    user_id: Optional[int] = Query(None, alias="userId"),
    svc: TaskService = Depends(_task_svc),
):
    """List the caller's tasks."""
    return await svc.list_tasks(user_id=user_id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, svc: TaskService = Depends(_task_svc)):
    return await svc.get_task(task_id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    body: TaskRequest,
    svc: TaskService = Depends(_task_svc),
):
    """Update a task. A userId in the body is ignored; ownership never moves."""
    return await svc.update_task(
        task_id,
        title=body.title,
        description=body.description,
        status=body.status,
    )


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: int, svc: TaskService = Depends(_task_svc)):
    await svc.delete_task(task_id)
    return Response(status_code=204)
