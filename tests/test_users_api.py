from datetime import datetime, timedelta

from claimdesk.models.user import Role, User
from claimdesk.services.credentials import authenticate
from tests.fixtures_data import add_organization, add_user, auth_headers, seed_two_tenants


def test_list_users_is_scoped_to_caller_organization_newest_first(client, db_session):
    org_a = add_organization(db_session, "Acme")
    org_b = add_organization(db_session, "Globex")
    base = datetime(2024, 1, 1)
    admin = add_user(db_session, org_a, email="admin@acme.test", role=Role.ADMIN, is_owner=True, created_at=base)
    add_user(db_session, org_a, email="newer@acme.test", created_at=base + timedelta(days=2))
    add_user(db_session, org_a, email="middle@acme.test", created_at=base + timedelta(days=1))
    add_user(db_session, org_b, email="other@globex.test", created_at=base + timedelta(days=3))

    response = client.get("/api/users", headers=auth_headers(admin, org_a))

    assert response.status_code == 200
    users = response.json()["users"]
    assert [entry["email"] for entry in users] == ["newer@acme.test", "middle@acme.test", "admin@acme.test"]
    assert all("password" not in entry for entry in users)
    assert "updatedAt" in users[0]


def test_non_admin_roles_get_403(client, db_session):
    data = seed_two_tenants(db_session)

    for key in ("manager_a", "inspector_a"):
        headers = auth_headers(data[key], data["org_a"])
        assert client.get("/api/users", headers=headers).json() == {"error": "Forbidden"}
        response = client.post("/api/users", json={"email": "x@acme.test", "role": "INSPECTOR"}, headers=headers)
        assert response.status_code == 403

    assert db_session.query(User).filter(User.email == "x@acme.test").count() == 0


def test_create_user_with_generated_password(client, db_session):
    data = seed_two_tenants(db_session)
    headers = auth_headers(data["owner_a"], data["org_a"])

    response = client.post("/api/users", json={"email": "new@acme.test", "role": "MANAGER"}, headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User created successfully"
    assert body["user"]["role"] == "MANAGER"
    assert body["user"]["isOwner"] is False
    assert len(body["temporaryPassword"]) >= 6

    identity = authenticate(db_session, "new@acme.test", body["temporaryPassword"])
    assert identity is not None
    assert identity.organization_id == data["org_a"].id

    duplicate = client.post("/api/users", json={"email": "new@acme.test", "role": "INSPECTOR"}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "User with this email already exists"}


def test_create_user_with_email_taken_in_another_organization_is_409(client, db_session):
    data = seed_two_tenants(db_session)

    response = client.post(
        "/api/users",
        json={"email": "inspector@globex.test", "role": "INSPECTOR"},
        headers=auth_headers(data["owner_a"], data["org_a"]),
    )

    assert response.status_code == 409


def test_create_user_validation(client, db_session):
    data = seed_two_tenants(db_session)
    headers = auth_headers(data["admin_a"], data["org_a"])
    cases = [
        ({"email": "a@acme.test"}, "Email and role are required"),
        ({"email": "bad", "role": "INSPECTOR"}, "Invalid email format"),
        ({"email": "a@acme.test", "role": "SUPERUSER"}, "Invalid role"),
        (
            {"email": "a@acme.test", "role": "INSPECTOR", "temporaryPassword": "123"},
            "Password must be at least 6 characters long",
        ),
    ]

    for payload, message in cases:
        response = client.post("/api/users", json=payload, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"error": message}


def test_update_user_name_and_role(client, db_session):
    data = seed_two_tenants(db_session)
    target = data["inspector_a"]

    response = client.patch(
        f"/api/users/{target.id}",
        json={"name": "Ines", "role": "MANAGER"},
        headers=auth_headers(data["admin_a"], data["org_a"]),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "User updated successfully"
    assert body["user"]["name"] == "Ines"
    assert body["user"]["role"] == "MANAGER"
    assert "updatedAt" in body["user"]


def test_update_rejects_invalid_role(client, db_session):
    data = seed_two_tenants(db_session)

    response = client.patch(
        f"/api/users/{data['inspector_a'].id}",
        json={"role": "ROOT"},
        headers=auth_headers(data["admin_a"], data["org_a"]),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid role"}


def test_owner_is_protected_even_from_other_admins(client, db_session):
    data = seed_two_tenants(db_session)
    owner = data["owner_a"]
    headers = auth_headers(data["admin_a"], data["org_a"])

    delete_response = client.delete(f"/api/users/{owner.id}", headers=headers)
    demote_response = client.patch(f"/api/users/{owner.id}", json={"role": "MANAGER"}, headers=headers)
    keep_admin_response = client.patch(f"/api/users/{owner.id}", json={"role": "ADMIN"}, headers=headers)

    assert delete_response.status_code == 400
    assert delete_response.json() == {"error": "Cannot delete organization owner"}
    assert demote_response.status_code == 400
    assert demote_response.json() == {"error": "Cannot change role of organization owner"}
    assert keep_admin_response.status_code == 200

    db_session.expire_all()
    stored = db_session.get(User, owner.id)
    assert stored.role == Role.ADMIN
    assert stored.is_owner is True


def test_admin_cannot_delete_themselves(client, db_session):
    data = seed_two_tenants(db_session)
    admin = data["admin_a"]

    response = client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin, data["org_a"]))

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete yourself"}


def test_cross_tenant_targets_look_missing(client, db_session):
    data = seed_two_tenants(db_session)
    foreign = data["inspector_b"]
    headers = auth_headers(data["owner_a"], data["org_a"])

    update_response = client.patch(f"/api/users/{foreign.id}", json={"name": "Hijacked"}, headers=headers)
    delete_response = client.delete(f"/api/users/{foreign.id}", headers=headers)

    assert update_response.status_code == 404
    assert update_response.json() == {"error": "User not found"}
    assert delete_response.status_code == 404

    db_session.expire_all()
    stored = db_session.get(User, foreign.id)
    assert stored is not None
    assert stored.name is None


def test_delete_user_then_delete_again_is_404(client, db_session):
    data = seed_two_tenants(db_session)
    target_id = data["inspector_a"].id
    headers = auth_headers(data["owner_a"], data["org_a"])

    first = client.delete(f"/api/users/{target_id}", headers=headers)
    second = client.delete(f"/api/users/{target_id}", headers=headers)

    assert first.status_code == 200
    assert first.json() == {"message": "User deleted successfully"}
    assert second.status_code == 404


def test_deleted_user_token_still_passes_gate_but_profile_is_404(client, db_session):
    data = seed_two_tenants(db_session)
    inspector = data["inspector_a"]
    stale_headers = auth_headers(inspector, data["org_a"])

    client.delete(f"/api/users/{inspector.id}", headers=auth_headers(data["owner_a"], data["org_a"]))

    assert client.get("/dashboard", headers=stale_headers).status_code == 200
    assert client.get("/api/profile", headers=stale_headers).status_code == 404
