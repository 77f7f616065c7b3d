"""测试辅助函数：注册登录、构造 Basic 认证头与测试图片。"""

import base64
import io
import uuid

from fastapi.testclient import TestClient
from PIL import Image

API = "/api/v1"


def unique_email() -> str:
    return f"user-{uuid.uuid4().hex[:10]}@example.com"


def basic_auth(email: str, password: str) -> dict[str, str]:
    encoded = base64.b64encode(f"{email}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


def register_and_login(client: TestClient, password: str = "secret") -> tuple[dict[str, str], int]:
    """注册一个新用户并登录，返回 ``(X-Token 头, 用户 ID)``。"""
    email = unique_email()
    created = client.post(f"{API}/users", json={"email": email, "password": password})
    assert created.status_code == 201
    resp = client.get(f"{API}/connect", headers=basic_auth(email, password))
    assert resp.status_code == 200
    return {"X-Token": resp.json()["data"]["token"]}, created.json()["data"]["id"]


def make_png_bytes(width: int = 600, height: int = 400) -> bytes:
    img = Image.new("RGB", (width, height), color=(200, 30, 30))
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
