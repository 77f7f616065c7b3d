"""用户注册、登录、个人信息与注销接口的集成测试。"""

from fastapi.testclient import TestClient

from helpers import API, basic_auth, register_and_login, unique_email


def test_register_user_success(client: TestClient):
    email = unique_email()
    response = client.post(f"{API}/users", json={"email": email, "password": "pw"})

    assert response.status_code == 201
    payload = response.json()
    assert payload["code"] == 201
    assert set(payload) == {"msg", "data", "code"}
    assert payload["data"]["email"] == email
    assert isinstance(payload["data"]["id"], int)
    assert "password" not in payload["data"]


def test_register_duplicate_email(client: TestClient):
    email = unique_email()
    client.post(f"{API}/users", json={"email": email, "password": "pw"})
    response = client.post(f"{API}/users", json={"email": email, "password": "other"})

    assert response.status_code == 400
    assert response.json()["msg"] == "Already exist"


def test_register_missing_fields(client: TestClient):
    missing_email = client.post(f"{API}/users", json={"password": "pw"})
    assert missing_email.status_code == 400
    assert missing_email.json()["msg"] == "Missing email"

    missing_password = client.post(f"{API}/users", json={"email": unique_email()})
    assert missing_password.status_code == 400
    assert missing_password.json()["msg"] == "Missing password"

    no_body = client.post(f"{API}/users")
    assert no_body.status_code == 400
    assert no_body.json()["msg"] == "Missing email"


def test_login_whoami_logout_flow(client: TestClient):
    email = unique_email()
    created = client.post(f"{API}/users", json={"email": email, "password": "pw"})
    assert created.status_code == 201

    login = client.get(f"{API}/connect", headers=basic_auth(email, "pw"))
    assert login.status_code == 200
    token = login.json()["data"]["token"]
    assert token

    me = client.get(f"{API}/users/me", headers={"X-Token": token})
    assert me.status_code == 200
    assert me.json()["data"] == {"id": created.json()["data"]["id"], "email": email}

    logout = client.get(f"{API}/disconnect", headers={"X-Token": token})
    assert logout.status_code == 204
    assert logout.content == b""

    after = client.get(f"{API}/users/me", headers={"X-Token": token})
    assert after.status_code == 401


def test_login_wrong_password(client: TestClient):
    email = unique_email()
    client.post(f"{API}/users", json={"email": email, "password": "pw"})

    response = client.get(f"{API}/connect", headers=basic_auth(email, "nope"))
    assert response.status_code == 401
    assert response.json()["msg"] == "Unauthorized"


def test_login_unknown_user_and_malformed_header(client: TestClient):
    assert client.get(f"{API}/connect", headers=basic_auth(unique_email(), "pw")).status_code == 401
    assert client.get(f"{API}/connect").status_code == 401
    assert client.get(f"{API}/connect", headers={"Authorization": "Bearer abc"}).status_code == 401
    assert client.get(f"{API}/connect", headers={"Authorization": "Basic !!!notbase64"}).status_code == 401


def test_each_login_issues_distinct_token(client: TestClient):
    email = unique_email()
    client.post(f"{API}/users", json={"email": email, "password": "pw"})
    first = client.get(f"{API}/connect", headers=basic_auth(email, "pw")).json()["data"]["token"]
    second = client.get(f"{API}/connect", headers=basic_auth(email, "pw")).json()["data"]["token"]

    assert first != second
    assert client.get(f"{API}/users/me", headers={"X-Token": first}).status_code == 200
    assert client.get(f"{API}/users/me", headers={"X-Token": second}).status_code == 200


def test_whoami_and_logout_require_valid_token(client: TestClient):
    assert client.get(f"{API}/users/me").status_code == 401
    assert client.get(f"{API}/users/me", headers={"X-Token": "unknown"}).status_code == 401
    assert client.get(f"{API}/disconnect").status_code == 401
    assert client.get(f"{API}/disconnect", headers={"X-Token": "unknown"}).status_code == 401


def test_double_logout_is_rejected(client: TestClient):
    headers, _ = register_and_login(client)
    assert client.get(f"{API}/disconnect", headers=headers).status_code == 204
    assert client.get(f"{API}/disconnect", headers=headers).status_code == 401
