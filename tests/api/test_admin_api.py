"""Admin endpoints: user management side effects on cache and sessions."""

from httpx import AsyncClient

from app.main import app, init_cache_components


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def test_non_admin_is_forbidden(client: AsyncClient, user_auth: dict) -> None:
    headers = bearer(user_auth["token"])

    assert (await client.get("/api/admin/stats", headers=headers)).status_code == 403
    assert (await client.get("/api/cache/stats", headers=headers)).status_code == 403


async def test_role_change_revokes_sessions_and_user_cache(
    client: AsyncClient, admin_auth: dict, user_auth: dict, redis_client
) -> None:
    user_id = user_auth["user"]["id"]
    await client.get("/api/auth/me", headers=bearer(user_auth["token"]))
    assert await redis_client.exists(f"user:{user_id}") == 1

    response = await client.patch(
        f"/api/admin/users/{user_id}",
        json={"role": "admin"},
        headers=bearer(admin_auth["token"]),
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    assert await redis_client.exists(f"user:{user_id}") == 0
    stale = await client.get("/api/auth/me", headers=bearer(user_auth["token"]))
    assert stale.status_code == 401


async def test_name_change_keeps_sessions(
    client: AsyncClient, admin_auth: dict, user_auth: dict
) -> None:
    response = await client.patch(
        f"/api/admin/users/{user_auth['user']['id']}",
        json={"name": "Alice B."},
        headers=bearer(admin_auth["token"]),
    )
    assert response.status_code == 200

    me = await client.get("/api/auth/me", headers=bearer(user_auth["token"]))
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Alice B."


async def test_email_conflict(client: AsyncClient, admin_auth: dict, user_auth: dict) -> None:
    response = await client.patch(
        f"/api/admin/users/{user_auth['user']['id']}",
        json={"email": "admin@example.com"},
        headers=bearer(admin_auth["token"]),
    )
    assert response.status_code == 409


async def test_admin_cannot_demote_or_delete_self(
    client: AsyncClient, admin_auth: dict
) -> None:
    admin_id = admin_auth["user"]["id"]
    headers = bearer(admin_auth["token"])

    demote = await client.patch(
        f"/api/admin/users/{admin_id}", json={"role": "regular"}, headers=headers
    )
    delete = await client.delete(f"/api/admin/users/{admin_id}", headers=headers)

    assert demote.status_code == 400
    assert delete.status_code == 400


async def test_password_reset_revokes_sessions(
    client: AsyncClient, admin_auth: dict, user_auth: dict
) -> None:
    response = await client.post(
        f"/api/admin/users/{user_auth['user']['id']}/password",
        json={"new_password": "brand-new-pass"},
        headers=bearer(admin_auth["token"]),
    )
    assert response.status_code == 200

    stale = await client.get("/api/auth/me", headers=bearer(user_auth["token"]))
    assert stale.status_code == 401
    relogin = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "brand-new-pass"},
    )
    assert relogin.status_code == 200


async def test_password_reset_requires_min_length(
    client: AsyncClient, admin_auth: dict, user_auth: dict
) -> None:
    response = await client.post(
        f"/api/admin/users/{user_auth['user']['id']}/password",
        json={"new_password": "short"},
        headers=bearer(admin_auth["token"]),
    )
    assert response.status_code == 422


async def test_delete_user_clears_cache_and_sessions(
    client: AsyncClient, admin_auth: dict, user_auth: dict, redis_client
) -> None:
    user_id = user_auth["user"]["id"]
    user_headers = bearer(user_auth["token"])
    task = (
        await client.post("/api/tasks", json={"title": "doomed"}, headers=user_headers)
    ).json()
    await client.get(f"/api/tasks/{task['id']}", headers=user_headers)
    await client.get("/api/tasks", headers=user_headers)
    await client.get("/api/auth/me", headers=user_headers)

    response = await client.delete(
        f"/api/admin/users/{user_id}", headers=bearer(admin_auth["token"])
    )

    assert response.status_code == 200
    for key in (f"user:{user_id}", f"tasks:{user_id}", f"task:{task['id']}"):
        assert await redis_client.exists(key) == 0
    assert await redis_client.keys(f"session:{user_id}:*") == []
    missing = await client.get(
        f"/api/admin/users/{user_id}", headers=bearer(admin_auth["token"])
    )
    assert missing.status_code == 404


async def test_user_detail_and_tasks(
    client: AsyncClient, admin_auth: dict, user_auth: dict
) -> None:
    user_headers = bearer(user_auth["token"])
    admin_headers = bearer(admin_auth["token"])
    user_id = user_auth["user"]["id"]
    await client.post("/api/tasks", json={"title": "a"}, headers=user_headers)
    await client.post(
        "/api/tasks", json={"title": "b", "status": "done"}, headers=user_headers
    )

    detail = await client.get(f"/api/admin/users/{user_id}", headers=admin_headers)
    done = await client.get(
        f"/api/admin/users/{user_id}/tasks",
        params={"status": "done"},
        headers=admin_headers,
    )

    assert detail.json()["task_count"] == 2
    assert len(detail.json()["tasks"]) == 2
    assert [task["title"] for task in done.json()] == ["b"]


async def test_all_tasks_pagination(
    client: AsyncClient, admin_auth: dict, user_auth: dict
) -> None:
    user_headers = bearer(user_auth["token"])
    for i in range(3):
        await client.post("/api/tasks", json={"title": f"t{i}"}, headers=user_headers)

    response = await client.get(
        "/api/admin/tasks",
        params={"page": 2, "limit": 2},
        headers=bearer(admin_auth["token"]),
    )

    body = response.json()
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "total_pages": 2}
    assert [task["title"] for task in body["tasks"]] == ["t0"]
    assert body["tasks"][0]["user"]["email"] == "alice@example.com"


async def test_stats(client: AsyncClient, admin_auth: dict, user_auth: dict) -> None:
    user_headers = bearer(user_auth["token"])
    await client.post("/api/tasks", json={"title": "a"}, headers=user_headers)
    await client.post(
        "/api/tasks", json={"title": "b", "status": "in_progress"}, headers=user_headers
    )

    response = await client.get("/api/admin/stats", headers=bearer(admin_auth["token"]))

    stats = response.json()
    assert stats["users"]["total"] == 2
    assert stats["users"]["admins"] == 1
    assert stats["users"]["regular"] == 1
    assert stats["users"]["top_users"][0]["email"] == "alice@example.com"
    assert stats["users"]["top_users"][0]["task_count"] == 2
    assert stats["tasks"] == {"total": 2, "open": 1, "in_progress": 1, "done": 0}


async def test_cache_stats(client: AsyncClient, admin_auth: dict) -> None:
    response = await client.get("/api/cache/stats", headers=bearer(admin_auth["token"]))

    body = response.json()
    assert response.status_code == 200
    assert body["connected"] is True
    assert body["db_size"] >= 1  # at least the admin's session
    assert "error" not in body


async def test_cache_stats_with_redis_down(
    client: AsyncClient, admin_auth: dict, down_store
) -> None:
    init_cache_components(app, down_store)

    response = await client.get("/api/cache/stats", headers=bearer(admin_auth["token"]))

    assert response.status_code == 200
    assert response.json() == {"connected": False}
