"""Task API routes.

Learn: These routes are the HTTP interface to TaskService. The whole
router sits behind get_current_user (see api/__init__.py), and each
handler also takes the user as a parameter so the service can scope
every query to it.

Key patterns:
- Query params for filtering (q, checked, next_days, expired, user_id)
- Filter params are read as raw strings; TaskFilters decides leniently
  what they mean, so a junk value disables the filter instead of 422-ing
- NotFound → 404 on show, 400 on update/delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.api.responses import no_content, ok
from taskapi.auth.dependencies import get_current_user
from taskapi.db.engine import get_db
from taskapi.db.models import Task, User
from taskapi.errors import NotFound
from taskapi.schemas.task import TaskCreateRequest, TaskRead, TaskUpdateRequest
from taskapi.services.task_filters import TaskFilters
from taskapi.services.task_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    TaskService,
)

router = APIRouter(prefix="/tasks")


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


def _task_body(task: Task) -> dict:
    return TaskRead.model_validate(task).model_dump(mode="json")


@router.get("")
async def list_tasks(
    q: Optional[str] = Query(None, description="Substring of title or content"),
    checked: Optional[str] = Query(None, description="true / false"),
    next_days: Optional[str] = Query(None, description="Due within N days from today"),
    expired: Optional[str] = Query(None, description="true: past due, false: upcoming"),
    user_id: Optional[str] = Query(None, description="Must be your own uuid"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """List the caller's tasks with optional filters (all ANDed)."""
    filters = TaskFilters.from_params(
        q=q,
        checked=checked,
        next_days=next_days,
        expired=expired,
        user_id=user_id,
    )
    tasks = await svc.list_tasks(user, filters, limit=limit, offset=offset)
    return ok(tasks=[_task_body(t) for t in tasks])


@router.get("/{task_id}")
async def get_task(
    task_id: int,
    user: User = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    try:
        task = await svc.get_task(user, task_id)
    except NotFound:
        raise NotFound("task not found", status_code=404)
    return ok(task=_task_body(task))


@router.post("", status_code=201)
async def create_task(
    body: TaskCreateRequest,
    user: User = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    task = await svc.create_task(user, body.task.model_dump())
    return ok(task=_task_body(task))


@router.patch("/{task_id}")
async def update_task(
    task_id: int,
    body: TaskUpdateRequest,
    user: User = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Partially update a task. Only fields present in the body change."""
    task = await svc.update_task(user, task_id, body.task.changes())
    return ok(task=_task_body(task))


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: int,
    user: User = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(user, task_id)
    return no_content()
