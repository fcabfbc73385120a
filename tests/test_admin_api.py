from utils.security import CredentialHasher


def _login(client, email, password="admin-pass-123"):
    return client.post("/api/admin/login", json={"email": email, "password": password})


def test_admin_login_returns_tokens_and_cookie(client, make_admin):
    make_admin(role="superadmin", email="root@example.com")
    res = _login(client, "root@example.com")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["admin"]["role"] == "superadmin"
    assert data["accessToken"] and data["refreshToken"]
    assert client.get_cookie("adminRefreshToken").value == data["refreshToken"]
    assert client.get_cookie("refreshToken") is None


def test_admin_login_wrong_password(client, make_admin):
    make_admin(email="root@example.com")
    res = _login(client, "root@example.com", "wrong-pass")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Invalid email or password"


def test_deactivated_admin_cannot_login(client, make_admin, store):
    admin = make_admin(email="root@example.com")
    store.update(admin, is_active=False)
    res = _login(client, "root@example.com")
    assert res.status_code == 403


def test_login_upgrades_outdated_hash(client, make_admin, services, store):
    admin = make_admin(email="root@example.com")
    older = CredentialHasher(time_cost=2, memory_cost=16, parallelism=1).hash("admin-pass-123")
    store.update(admin, password_hash=older)

    assert _login(client, "root@example.com").status_code == 200
    upgraded = store.get_admin(admin.id).password_hash
    assert upgraded != older
    assert services.hasher.needs_rehash(upgraded) is False
    assert _login(client, "root@example.com").status_code == 200


def test_superadmin_registers_admin(client, make_admin, admin_headers):
    root = make_admin(role="superadmin")
    res = client.post(
        "/api/admin/register",
        headers=admin_headers(root),
        json={"name": "Editor One", "email": "Editor@Example.com", "password": "editor-pass-1", "role": "editor"},
    )
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["email"] == "editor@example.com"
    assert data["role"] == "editor"
    assert "password" not in data

    dup = client.post(
        "/api/admin/register",
        headers=admin_headers(root),
        json={"name": "Editor Two", "email": "editor@example.com", "password": "editor-pass-1"},
    )
    assert dup.status_code == 409


def test_register_defaults_role_to_admin(client, make_admin, admin_headers):
    root = make_admin(role="superadmin")
    res = client.post(
        "/api/admin/register",
        headers=admin_headers(root),
        json={"name": "Plain Admin", "email": "plain@example.com", "password": "plain-pass-1"},
    )
    assert res.get_json()["data"]["role"] == "admin"


def test_register_rejects_unknown_role(client, make_admin, admin_headers):
    root = make_admin(role="superadmin")
    res = client.post(
        "/api/admin/register",
        headers=admin_headers(root),
        json={"name": "Odd", "email": "odd@example.com", "password": "odd-pass-12", "role": "owner"},
    )
    assert res.status_code == 400


def test_non_superadmin_cannot_register(client, make_admin, admin_headers):
    editor = make_admin(role="editor")
    res = client.post(
        "/api/admin/register",
        headers=admin_headers(editor),
        json={"name": "Someone", "email": "someone@example.com", "password": "someone-pass"},
    )
    assert res.status_code == 403
    assert res.get_json()["message"] == "Insufficient role"


def test_user_token_on_admin_route_is_403(client, make_user, user_headers):
    res = client.get("/api/admin/profile", headers=user_headers(make_user()))
    assert res.status_code == 403
    assert res.get_json()["message"] == "Admin access required"


def test_admin_profile(client, make_admin, admin_headers):
    admin = make_admin(email="me@example.com")
    res = client.get("/api/admin/profile", headers=admin_headers(admin))
    assert res.status_code == 200
    assert res.get_json()["data"]["email"] == "me@example.com"


def test_list_admins_is_paginated(client, make_admin, admin_headers):
    root = make_admin(role="superadmin")
    for _ in range(4):
        make_admin()
    res = client.get("/api/admin/all?page=2&limit=2", headers=admin_headers(root))
    assert res.status_code == 200
    body = res.get_json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "currentPage": 2,
        "totalPages": 3,
        "totalItems": 5,
        "itemsPerPage": 2,
        "hasNextPage": True,
        "hasPrevPage": True,
    }


def test_admin_refresh_from_body_and_alias(client, make_admin):
    make_admin(email="root@example.com")
    first = _login(client, "root@example.com").get_json()["data"]["refreshToken"]

    res = client.post("/api/admin/refresh-token", json={"refreshToken": first})
    assert res.status_code == 200
    second = res.get_json()["data"]["refreshToken"]
    assert second != first

    assert client.post("/api/admin/refresh", json={"refreshToken": first}).status_code == 401
    assert client.post("/api/admin/refresh", json={"refreshToken": second}).status_code == 200


def test_admin_refresh_token_is_rejected_by_user_refresh(client, make_admin):
    make_admin(email="root@example.com")
    token = _login(client, "root@example.com").get_json()["data"]["refreshToken"]
    assert client.post("/api/auth/refresh", json={"refreshToken": token}).status_code == 401


def test_admin_logout(client, make_admin):
    make_admin(email="root@example.com")
    data = _login(client, "root@example.com").get_json()["data"]
    headers = {"Authorization": f"Bearer {data['accessToken']}"}
    assert client.post("/api/admin/logout", headers=headers).status_code == 200
    assert client.get_cookie("adminRefreshToken") is None
    assert client.post("/api/admin/refresh", json={"refreshToken": data["refreshToken"]}).status_code == 401


def test_deactivate_locks_admin_out(client, make_admin):
    make_admin(email="root@example.com")
    data = _login(client, "root@example.com").get_json()["data"]
    headers = {"Authorization": f"Bearer {data['accessToken']}"}

    assert client.put("/api/admin/deactivate", headers=headers).status_code == 200
    assert client.get("/api/admin/profile", headers=headers).status_code == 401
    assert client.post("/api/admin/refresh", json={"refreshToken": data["refreshToken"]}).status_code == 401
