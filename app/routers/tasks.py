from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import CacheDep, CurrentUser, DbDep, rate_limit
from app.models import MessageResponse, TaskCreate, TaskRead, TaskUpdate
from app.services.task_service import TaskService

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    dependencies=[Depends(rate_limit("tasks"))],
)


async def _get_owned_task(service: TaskService, task_id: str, user_id: str) -> TaskRead:
    task = await service.get_task(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found",
        )
    if task.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not the owner of this task",
        )
    return task


@router.get("", response_model=list[TaskRead])
async def get_tasks(user: CurrentUser, db: DbDep, cache: CacheDep):
    """Tasks of the current user, newest first"""
    return await TaskService(db, cache).list_tasks(user.user_id)


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate, user: CurrentUser, db: DbDep, cache: CacheDep
):
    """Create a new task"""
    return await TaskService(db, cache).create_task(task_data, user.user_id)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(task_id: str, user: CurrentUser, db: DbDep, cache: CacheDep):
    """Get a specific task by ID"""
    return await _get_owned_task(TaskService(db, cache), task_id, user.user_id)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    user: CurrentUser,
    db: DbDep,
    cache: CacheDep,
):
    service = TaskService(db, cache)
    await _get_owned_task(service, task_id, user.user_id)
    task = await service.update_task(task_id, task_data)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found",
        )
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: str, user: CurrentUser, db: DbDep, cache: CacheDep):
    """Delete a task"""
    service = TaskService(db, cache)
    await _get_owned_task(service, task_id, user.user_id)
    if not await service.delete_task(task_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found",
        )
    return MessageResponse(message="Task deleted successfully")
