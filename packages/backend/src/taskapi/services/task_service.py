"""Task service — owner-scoped CRUD for tasks.

Learn: Every query here starts from the caller. Lists are filtered by
TaskFilters (which always adds the owner clause), and every single-task
operation goes through _owned_task(), which checks ownership explicitly:

    task missing           → NotFound
    task.user_id != owner  → NotFound   (same answer, no existence leak)

The HTTP layer decides which status NotFound maps to (404 for show,
400 everywhere else).
"""

from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.db.models import Task, User, utcnow
from taskapi.errors import NotFound
from taskapi.services.task_filters import TaskFilters

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

# Task ids are int4 on Postgres; anything outside can't name a row.
MAX_TASK_ID = 2**31 - 1

# Fields a client may write. user_id is set once from the principal.
WRITABLE_FIELDS = ("title", "content", "checked", "due_to")


class TaskService:
    """Business logic for task CRUD."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    # ─── Read ────────────────────────────────────────────

    async def list_tasks(
        self,
        owner: User,
        filters: Optional[TaskFilters] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[Task]:
        """List the owner's tasks matching all active filters, oldest first.

        Learn: Filters are applied conditionally — only the ones the
        caller provided. Ordering by id keeps limit/offset pages stable.
        """
        filters = filters or TaskFilters()
        query = (
            select(Task)
            .where(*filters.clauses(owner, self.clock()))
            .order_by(Task.id.asc())
            .limit(min(limit, MAX_PAGE_SIZE))
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_task(self, owner: User, task_id: int) -> Task:
        return await self._owned_task(owner, task_id)

    # ─── Write ───────────────────────────────────────────

    async def create_task(self, owner: User, fields: dict[str, Any]) -> Task:
        task = Task(user_id=owner.id, **_writable(fields))
        self.db.add(task)
        await self.db.commit()
        logger.info("tasks.created", task_id=task.id, user_uuid=str(owner.uuid))
        return task

    async def update_task(
        self, owner: User, task_id: int, fields: dict[str, Any]
    ) -> Task:
        """Apply only the given fields (NOT ownership)."""
        task = await self._owned_task(owner, task_id)
        for name, value in _writable(fields).items():
            setattr(task, name, value)
        await self.db.commit()
        return task

    async def delete_task(self, owner: User, task_id: int) -> None:
        task = await self._owned_task(owner, task_id)
        await self.db.delete(task)
        await self.db.commit()
        logger.info("tasks.deleted", task_id=task_id, user_uuid=str(owner.uuid))

    # ─── Ownership ───────────────────────────────────────

    async def _owned_task(self, owner: User, task_id: int) -> Task:
        if not 1 <= task_id <= MAX_TASK_ID:
            raise NotFound("task not found")
        task = await self.db.get(Task, task_id)
        if task is None or task.user_id != owner.id:
            raise NotFound("task not found")
        return task


def _writable(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k in WRITABLE_FIELDS}
