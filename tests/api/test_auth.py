# tests/api/test_auth.py
from jose import jwt

from school_attendance.core.config import settings
from school_attendance.core.security import create_access_token


def test_login_success(client):
    response = client.post("/api/auth/login", json={"username": "teacher", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]


def test_login_wrong_password(client):
    response = client.post("/api/auth/login", json={"username": "teacher", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "用户名或密码错误"}


def test_me_returns_current_user(client, teacher_headers):
    response = client.get("/api/auth/me", headers=teacher_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "teacher"
    assert response.json()["role"] == "teacher"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert "error" in response.json()


def test_invalid_token_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["error"] == "Could not validate credentials"


def test_register_student(client):
    payload = {"username": "dave", "password": "pw123456", "name": "赵六", "role": "student"}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 200
    assert response.json()["access_token"]


def test_register_rejects_admin_role(client):
    payload = {"username": "eve", "password": "pw123456", "name": "Eve", "role": "admin"}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 400


def test_register_duplicate_username(client):
    payload = {"username": "alice", "password": "pw123456", "name": "张三", "role": "student"}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["error"] == "用户名已被注册"


def test_student_cannot_use_staff_routes(client, student_headers):
    response = client.get("/api/classes", headers=student_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "权限不足"}


def test_teacher_sees_only_own_classes(client, teacher_headers, admin_headers, seed):
    own = client.get("/api/classes", headers=teacher_headers).json()
    assert [c["id"] for c in own] == [seed["class_a"]]
    everything = client.get("/api/classes", headers=admin_headers).json()
    assert {c["id"] for c in everything} == {seed["class_a"], seed["class_b"]}


def test_teacher_adds_student_to_own_class(client, teacher_headers, seed):
    payload = {
        "username": "frank", "password": "pw123456", "name": "孙七",
        "class_id": seed["class_a"], "student_no": "2024003",
    }
    response = client.post("/api/students", json=payload, headers=teacher_headers)
    assert response.status_code == 201
    assert response.json()["name"] == "孙七"

    students = client.get(f"/api/classes/{seed['class_a']}/students", headers=teacher_headers).json()
    assert [s["student_no"] for s in students] == ["2024001", "2024002", "2024003"]


def test_teacher_cannot_list_foreign_class(client, teacher_headers, seed):
    response = client.get(f"/api/classes/{seed['class_b']}/students", headers=teacher_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "无权操作该班级"


def test_token_without_subject_rejected(client):
    token = create_access_token(data={"role": "admin"})
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_login_token_carries_role(client):
    token = client.post("/api/auth/login", json={"username": "admin", "password": "secret123"}).json()["access_token"]
    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["sub"] == "admin"
    assert claims["role"] == "admin"
