from datetime import datetime, timezone

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.cache.decorators import read_through
from app.cache.layer import CacheLayer
from app.models import Task, TaskCreate, TaskRead, TaskStatus, TaskUpdate


class TaskService:
    """Task reads go through the cache; every write invalidates the task and its owner's list."""

    def __init__(self, db: AsyncSession, cache: CacheLayer):
        self.db = db
        self.cache = cache

    async def create_task(self, task_data: TaskCreate, user_id: str) -> TaskRead:
        task = Task.model_validate(task_data, update={"user_id": user_id})
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        await self.cache.invalidate_task_cache(task.id, user_id)
        return TaskRead.model_validate(task)

    @read_through("get_cached_tasks", "set_cached_tasks", lambda user_id, **_: user_id)
    async def list_tasks(self, user_id: str) -> list[TaskRead]:
        query = (
            select(Task).where(Task.user_id == user_id).order_by(Task.created_at.desc())
        )
        result = await self.db.exec(query)
        return [TaskRead.model_validate(task) for task in result.all()]

    async def list_tasks_filtered(
        self, user_id: str, status: TaskStatus | None = None
    ) -> list[TaskRead]:
        """Uncached listing with a status filter (admin view)."""
        query = select(Task).where(Task.user_id == user_id)
        if status is not None:
            query = query.where(Task.status == status)
        result = await self.db.exec(query.order_by(Task.created_at.desc()))
        return [TaskRead.model_validate(task) for task in result.all()]

    @read_through("get_cached_task", "set_cached_task", lambda task_id, **_: task_id)
    async def get_task(self, task_id: str) -> TaskRead | None:
        task = await self.db.get(Task, task_id)
        if task is None:
            return None
        return TaskRead.model_validate(task)

    async def update_task(self, task_id: str, task_data: TaskUpdate) -> TaskRead | None:
        task = await self.db.get(Task, task_id)
        if not task:
            return None
        update_data = task_data.model_dump(exclude_unset=True)
        for required in ("title", "status"):
            if update_data.get(required) is None:
                update_data.pop(required, None)
        task.sqlmodel_update(update_data)
        task.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(task)
        await self.cache.invalidate_task_cache(task.id, task.user_id)
        return TaskRead.model_validate(task)

    async def delete_task(self, task_id: str) -> bool:
        task = await self.db.get(Task, task_id)
        if not task:
            return False
        user_id = task.user_id
        await self.db.delete(task)
        await self.db.commit()
        await self.cache.invalidate_task_cache(task_id, user_id)
        return True
