"""Task service: business logic for task CRUD with owner enforcement.

Learn: Every operation addressed by a task id follows the same steps:
1. load the row (absent → NotFound, 404)
2. ensure_owner(row.user_id, principal) (mismatch → OwnershipViolation, 403)
3. only then read, change or delete it

With conceal_foreign=True step 2 reports NotFound instead, so a caller
cannot tell "no such task" from "someone else's task".

Creation never trusts the payload's owner. The owner is the principal, and
the identity service must confirm that user still exists before anything
is written.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from microtodo.auth.ownership import ensure_owner
from microtodo.auth.verifier import Principal
from microtodo.errors import NotFound, OwnershipViolation
from microtodo.tasks.identity_client import IdentityClient
from microtodo.tasks.models import Task, TaskStatus

logger = structlog.get_logger()


class TaskService:
    """Business logic for task CRUD, scoped to one principal."""

    def __init__(
        self,
        db: AsyncSession,
        principal: Principal,
        identity: Optional[IdentityClient] = None,
        conceal_foreign: bool = False,
    ):
        self.db = db
        self.principal = principal
        self.identity = identity
        self.conceal_foreign = conceal_foreign

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        requested_owner_id: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Task:
        """Create a task owned by the principal.

        requested_owner_id is what the client claimed; it is only logged.
        """
        if requested_owner_id is not None and requested_owner_id != self.principal.user_id:
            logger.warning(
                "tasks.owner_override",
                requested_owner_id=requested_owner_id,
                owner_id=self.principal.user_id,
            )

        if self.identity is None:
            raise RuntimeError("TaskService.create_task requires an IdentityClient")
        # Raises NotFound / DependencyUnavailable; nothing is written on failure
        await self.identity.confirm_user_exists(self.principal.user_id, request_id=request_id)

        task = Task(
            title=title,
            description=description,
            status=status or TaskStatus.PENDING,
            user_id=self.principal.user_id,
        )
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("tasks.created", task_id=task.id, owner_id=task.user_id)
        return task

    # ─── Read ────────────────────────────────────────────

    async def list_tasks(self, user_id: Optional[int] = None) -> list[Task]:
        """The principal's tasks. Asking for anyone else's list is forbidden."""
        if user_id is not None:
            ensure_owner(user_id, self.principal)
        result = await self.db.execute(
            select(Task)
            .where(Task.user_id == self.principal.user_id)
            .order_by(Task.id)
        )
        return list(result.scalars().all())

    async def get_task(self, task_id: int) -> Task:
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFound("Task not found")
        try:
            ensure_owner(task.user_id, self.principal)
        except OwnershipViolation:
            logger.warning("tasks.foreign_access", task_id=task_id, owner_id=task.user_id)
            if self.conceal_foreign:
                raise NotFound("Task not found") from None
            raise
        return task

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        task_id: int,
        title: str,
        description: Optional[str] = None,
        status: Optional[TaskStatus] = None,
    ) -> Task:
        """Replace title/description; status only when given. Owner never changes."""
        task = await self.get_task(task_id)
        task.title = title
        task.description = description
        if status is not None:
            task.status = status
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("tasks.updated", task_id=task.id)
        return task

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, task_id: int) -> None:
        task = await self.get_task(task_id)
        await self.db.delete(task)
        await self.db.commit()
        logger.info("tasks.deleted", task_id=task_id)
