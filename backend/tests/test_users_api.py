def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_create_and_get_user(client, entity_factory):
    sales = entity_factory.create_department(name="Sales")
    admin = entity_factory.create_role(name="admin")

    r = client.post("/api/users", json={
        "username": "alice",
        "email": "alice@example.com",
        "department_id": sales.id,
        "role_ids": [admin.id],
        "attributes": {"team": "core"},
    })
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["department"]["name"] == "Sales"
    assert [role["name"] for role in body["roles"]] == ["admin"]
    assert body["attributes"] == {"team": "core"}

    r2 = client.get(f"/api/users/{body['id']}")
    assert r2.status_code == 200, r2.text
    assert r2.json()["username"] == "alice"


def test_create_user_with_unknown_references(client):
    r = client.post("/api/users", json={"username": "alice", "department_id": "missing"})
    assert r.status_code == 400

    r2 = client.post("/api/users", json={"username": "alice", "role_ids": [999]})
    assert r2.status_code == 400


def test_create_user_rejects_empty_username(client):
    r = client.post("/api/users", json={"username": ""})
    assert r.status_code == 422


def test_list_users_with_filters(client, entity_factory):
    sales = entity_factory.create_department(name="Sales")
    admin = entity_factory.create_role(name="admin")
    alice = entity_factory.create_user(username="alice", department=sales, roles=[admin], active=True)
    entity_factory.create_user(username="bob", department=sales, active=False)
    entity_factory.create_user(username="carol", department=None, active=True)

    r = client.get("/api/users", params={"department": "Sales"})
    assert r.status_code == 200, r.text
    assert sorted(user["username"] for user in r.json()) == ["alice", "bob"]

    r2 = client.get("/api/users", params={"department": "Sales", "active": True})
    assert [user["username"] for user in r2.json()] == ["alice"]

    r3 = client.get("/api/users", params={"role": "admin"})
    assert [user["id"] for user in r3.json()] == [alice.id]

    r4 = client.get("/api/users", params={"limit": 2})
    assert len(r4.json()) == 2


def test_get_missing_user_returns_404(client):
    r = client.get("/api/users/missing")
    assert r.status_code == 404


def test_update_user(client, entity_factory, entity_helper):
    manager = entity_factory.create_user(department=None)
    user = entity_factory.create_user(username="alice", department=None)

    r = client.put(f"/api/users/{user.id}", json={"username": "alicia", "manager_id": manager.id})
    assert r.status_code == 200, r.text
    assert r.json()["manager_id"] == manager.id

    stored = entity_helper.find(user)
    assert stored.username == "alicia"
    assert stored.manager_id == manager.id


def test_user_cannot_manage_themselves(client, entity_factory):
    user = entity_factory.create_user(department=None)

    r = client.put(f"/api/users/{user.id}", json={"manager_id": user.id})
    assert r.status_code == 400


def test_update_missing_user_returns_404(client):
    r = client.put("/api/users/missing", json={"username": "x"})
    assert r.status_code == 404


def test_delete_user(client, entity_factory, entity_helper):
    user = entity_factory.create_user(attributes={"team": "core"})

    r = client.delete(f"/api/users/{user.id}")
    assert r.status_code == 204

    assert entity_helper.find(user) is None
    assert client.get(f"/api/users/{user.id}").status_code == 404
    assert client.delete(f"/api/users/{user.id}").status_code == 404
