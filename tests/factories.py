"""Projection builders shared by the cache tests."""

from datetime import datetime, timezone

from app.models import TaskRead, TaskStatus, UserRead, UserRole


def make_user(user_id: str = "u1") -> UserRead:
    return UserRead(
        id=user_id,
        email=f"{user_id}@example.com",
        name="Alice",
        role=UserRole.REGULAR,
        created_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    )


def make_task(task_id: str = "t1", user_id: str = "u1", **overrides) -> TaskRead:
    fields = {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": None,
        "status": TaskStatus.OPEN,
        "user_id": user_id,
        "created_at": datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return TaskRead(**fields)
