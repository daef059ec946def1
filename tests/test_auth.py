from school_portal.models import RoleModule, User
from school_portal.security import create_access_token, decode_access_token, hash_password, verify_password


def test_password_hash_round_trip():
    hashed = hash_password("secret123", rounds=4)
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_with_malformed_hash():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False


def test_token_payload():
    token = create_access_token(user_id=7, username="principal", role="principal", email="p@school.local")
    payload = decode_access_token(token)
    assert payload["sub"] == "principal"
    assert payload["uid"] == 7
    assert payload["role"] == "principal"
    assert payload["exp"] > payload["iat"]


def test_login_success(client, db):
    response = client.post("/api/auth/login", json={"username": "principal", "password": "principal123"})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["token"]
    assert body["user"]["username"] == "principal"
    assert body["user"]["role"] == "principal"
    assert "password_hash" not in body["user"]

    db.expire_all()
    user = db.query(User).filter(User.username == "principal").one()
    assert user.last_login_at is not None


def test_login_wrong_password(client):
    response = client.post("/api/auth/login", json={"username": "principal", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_unknown_user(client):
    response = client.post("/api/auth/login", json={"username": "ghost", "password": "whatever"})
    assert response.status_code == 401


def test_login_missing_fields(client):
    response = client.post("/api/auth/login", json={"username": "principal"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid data"


def test_login_disabled_account(client, db):
    user = db.query(User).filter(User.username == "staff").one()
    user.is_active = False
    db.commit()
    response = client.post("/api/auth/login", json={"username": "staff", "password": "staff123"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Account is disabled"


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Basic abc"}).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_expired_token_rejected(client, user_id):
    token = create_access_token(user_id=user_id("admin"), username="admin", role="super_admin", expires_minutes=-5)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_token_for_deleted_user_rejected(client):
    token = create_access_token(user_id=9999, username="ghost", role="admin")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_me_logout_permissions_navigation(client, login):
    headers = login("accountant")
    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["role"] == "accountant"

    logout = client.post("/api/auth/logout", headers=headers)
    assert logout.json() == {"message": "Logout successful"}

    permissions = client.get("/api/auth/permissions", headers=headers).json()
    assert permissions["user"]["username"] == "accountant"
    assert permissions["permissions"]["payroll"]["admin"] is True
    assert permissions["permissions"]["students"]["read"] is False

    navigation = client.get("/api/auth/navigation", headers=headers).json()["navigation"]
    assert [item["module"] for item in navigation] == ["dashboard", "attendance", "fees", "payroll"]


def test_role_test_routes(client, login):
    student = login("student")
    teacher = login("teacher")
    admin = login("admin")

    assert client.get("/api/test/student-only", headers=student).status_code == 200
    denied = client.get("/api/test/student-only", headers=teacher)
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Access denied. Required roles: student"

    assert client.get("/api/test/teacher-only", headers=teacher).json()["acting_role"] == "class_teacher"
    assert client.get("/api/test/admin-only", headers=admin).status_code == 200
    assert client.get("/api/test/admin-only", headers=teacher).status_code == 403


def test_module_guard_message(client, login):
    response = client.get("/api/students", headers=login("accountant"))
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied. Required: read access to students module"


def test_rbac_demo_is_public(client):
    response = client.get("/api/rbac-demo")
    assert response.status_code == 200
    roles = {entry["role"]: entry for entry in response.json()["roles"]}
    assert len(roles) == 9
    assert roles["super_admin"]["credentials"] == {"username": "admin", "password": "admin123"}
    assert {"module": "users", "access": "admin", "restrictions": []} in roles["super_admin"]["modules"]


def test_register_notification_token(client, login, db):
    response = client.post("/api/notifications/register", json={"fcm_token": "device-123"}, headers=login("parent"))
    assert response.status_code == 200
    db.expire_all()
    assert db.query(User).filter(User.username == "parent").one().fcm_token == "device-123"


def test_user_management_requires_super_admin(client, login):
    assert client.get("/api/users", headers=login("principal")).status_code == 403

    headers = login("admin")
    created = client.post(
        "/api/users",
        json={"username": "librarian", "password": "books123", "name": "Lib Rarian", "role": "non_teaching_staff"},
        headers=headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["role"] == "non_teaching_staff"
    assert "password" not in body and "password_hash" not in body

    duplicate = client.post(
        "/api/users",
        json={"username": "librarian", "password": "books123", "name": "Again", "role": "parent"},
        headers=headers,
    )
    assert duplicate.status_code == 409

    login_response = client.post("/api/auth/login", json={"username": "librarian", "password": "books123"})
    assert login_response.status_code == 200

    updated = client.put(f"/api/users/{body['id']}", json={"is_active": False}, headers=headers)
    assert updated.json()["is_active"] is False
    assert client.delete(f"/api/users/{body['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/users/{body['id']}", headers=headers).status_code == 404


def test_invalid_email_rejected(client, login):
    response = client.post(
        "/api/users",
        json={"username": "bademail", "password": "secret1", "name": "X", "role": "parent", "email": "not-an-email"},
        headers=login("admin"),
    )
    assert response.status_code == 400


def test_modules_catalog_seeded_from_permission_table(client, login, db):
    rows = db.query(RoleModule).filter(RoleModule.role == "class_teacher").all()
    assert len(rows) == 7

    modules = client.get("/api/modules", headers=login("principal"))
    assert modules.status_code == 200
    assert len(modules.json()) == 15
    assert client.get("/api/modules", headers=login("teacher")).status_code == 403

    mine = client.get("/api/user-modules", headers=login("accountant")).json()
    fees = next(row for row in mine if row["name"] == "fees")
    assert fees == {
        "id": fees["id"],
        "name": "fees",
        "display_name": "Fees",
        "description": fees["description"],
        "icon": "CreditCard",
        "route": "/fees",
        "canRead": True,
        "canWrite": True,
        "canDelete": True,
    }
    dashboard = next(row for row in mine if row["name"] == "dashboard")
    assert dashboard["canWrite"] is False


def test_toggle_module(client, login):
    headers = login("principal")
    response = client.put("/api/modules/payroll", json={"is_active": False}, headers=headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    names = [row["name"] for row in client.get("/api/user-modules", headers=login("accountant")).json()]
    assert "payroll" not in names
    assert client.put("/api/modules/unknown", json={"is_active": False}, headers=headers).status_code == 404


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
