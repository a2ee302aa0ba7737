"""Key naming for every value this service keeps in Redis.

Keys are ``{namespace}:{id}`` or ``{namespace}:{id}:{subid}``.
"""

USER_NAMESPACE = "user"
TASKS_NAMESPACE = "tasks"
TASK_NAMESPACE = "task"
SESSION_NAMESPACE = "session"
RATELIMIT_NAMESPACE = "ratelimit"

KEY_SEP = ":"


def _key(namespace: str, *parts: str) -> str:
    return KEY_SEP.join((namespace, *(str(p) for p in parts)))


def user_key(user_id: str) -> str:
    return _key(USER_NAMESPACE, user_id)


def tasks_key(user_id: str) -> str:
    """Ordered task list of one user."""
    return _key(TASKS_NAMESPACE, user_id)


def task_key(task_id: str) -> str:
    return _key(TASK_NAMESPACE, task_id)


def session_key(user_id: str, token_id: str) -> str:
    return _key(SESSION_NAMESPACE, user_id, token_id)


def session_pattern(user_id: str) -> str:
    """SCAN pattern matching every session of a user."""
    return _key(SESSION_NAMESPACE, user_id, "*")


def ratelimit_key(user_id: str, endpoint: str) -> str:
    return _key(RATELIMIT_NAMESPACE, user_id, endpoint)
