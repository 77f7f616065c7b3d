"""会话令牌存储：使用 Redis 或内存后端维护 ``token -> user_id`` 的映射。

令牌过期完全依赖后端自身的按键 TTL（Redis ``EX``），服务端不做任何后台清理；
内存后端仅在读取时惰性判断过期。除本模块外，其它组件不得自行保存令牌与用户的映射。
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import redis

from files_manager.core.config import get_settings
from files_manager.core.constants import TOKEN_KEY_PREFIX
from files_manager.core.logger import logger


class TokenBackend:
    """令牌后端基类，定义签发、解析与注销接口。"""

    def set(self, token: str, user_id: int, ttl_seconds: int) -> None:  # pragma: no cover - interface definition
        raise NotImplementedError

    def get(self, token: str) -> Optional[str]:  # pragma: no cover
        raise NotImplementedError

    def delete(self, token: str) -> bool:  # pragma: no cover
        raise NotImplementedError

    def is_alive(self) -> bool:  # pragma: no cover
        raise NotImplementedError


class RedisTokenBackend(TokenBackend):
    """基于 Redis 的令牌后端，每个令牌一个键，依靠键级 TTL 过期。"""

    def __init__(self, url: Optional[str] = None, *, client: Optional[redis.Redis] = None) -> None:
        self._client = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self._client.ping()

    def set(self, token: str, user_id: int, ttl_seconds: int) -> None:
        self._client.set(self._build_key(token), str(user_id), ex=ttl_seconds)

    def get(self, token: str) -> Optional[str]:
        return self._client.get(self._build_key(token))

    def delete(self, token: str) -> bool:
        return bool(self._client.delete(self._build_key(token)))

    def is_alive(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @staticmethod
    def _build_key(token: str) -> str:
        return f"{TOKEN_KEY_PREFIX}{token}"


class InMemoryTokenBackend(TokenBackend):
    """内存后端用于测试或缺少 Redis 时的回退实现。"""

    def __init__(self) -> None:
        self._store: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def set(self, token: str, user_id: int, ttl_seconds: int) -> None:
        expires_at = self._now() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._store[token] = (str(user_id), expires_at)

    def get(self, token: str) -> Optional[str]:
        with self._lock:
            record = self._store.get(token)
            if record is None:
                return None
            user_id, expires_at = record
            if expires_at <= self._now():
                self._store.pop(token, None)
                return None
            return user_id

    def delete(self, token: str) -> bool:
        with self._lock:
            record = self._store.pop(token, None)
        return record is not None and record[1] > self._now()

    def is_alive(self) -> bool:
        return True

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)


_backend: Optional[TokenBackend] = None


def init_token_store(backend: Optional[TokenBackend] = None) -> TokenBackend:
    """显式初始化令牌后端；未指定时优先连接 Redis，失败则回退到内存实现。"""
    global _backend
    if backend is not None:
        _backend = backend
        return _backend
    if _backend is not None:
        return _backend

    settings = get_settings()
    try:
        _backend = RedisTokenBackend(settings.redis_url)
        logger.info("Token store initialized with Redis at %s", settings.redis_url)
    except redis.RedisError as exc:
        logger.warning("Redis unavailable (%s), falling back to in-memory token store", exc)
        _backend = InMemoryTokenBackend()
    return _backend


def _get_backend() -> TokenBackend:
    if _backend is None:
        return init_token_store()
    return _backend


def issue_token(user_id: int) -> str:
    """签发新的不透明令牌并以固定 TTL 写入后端。"""
    token = str(uuid.uuid4())
    _get_backend().set(token, user_id, get_settings().token_ttl_seconds)
    return token


def resolve_token(token: Optional[str]) -> Optional[int]:
    """返回令牌对应的用户 ID；令牌缺失、未知、过期或格式异常时返回 ``None``。"""
    if not token:
        return None
    raw = _get_backend().get(token)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Token store holds a non-numeric user id for a session")
        return None


def revoke_token(token: Optional[str]) -> bool:
    """删除令牌映射；令牌已不存在时返回 ``False``（重复注销不视为错误）。"""
    if not token:
        return False
    return _get_backend().delete(token)


def token_store_alive() -> bool:
    return _get_backend().is_alive()


def redis_alive() -> bool:
    """只有令牌存储确实运行在 Redis 上且能连通时才返回 True；内存回退视为 Redis 不可用。"""
    backend = _get_backend()
    return isinstance(backend, RedisTokenBackend) and backend.is_alive()
