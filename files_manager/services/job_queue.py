"""缩略图任务队列：Redis 列表实现的持久化队列，以及用于测试/单机的内存实现。

投递语义为“至少一次”：worker 通过 ``BLMOVE`` 将任务原子地移入处理中列表，
处理结束后再从中移除；worker 重启时调用 ``requeue_inflight`` 把遗留任务放回队列。
任务处理本身是幂等的（覆盖同名缩略图），因此重复投递无需额外去重。

失败通知是单向的：记录到失败列表并回调已注册的监听器，不做自动重试。
"""

from __future__ import annotations

import json
import queue
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import redis

from files_manager.core.config import get_settings
from files_manager.core.logger import logger


class JobStatusEnum(str, Enum):
    UPLOADED = "uploaded"
    QUEUED = "queued"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


@dataclass
class ThumbnailJob:
    file_id: int
    user_id: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    # 出队时的原始载荷，用于确认（ack）
    raw: Optional[str] = field(default=None, compare=False, repr=False)

    def to_payload(self) -> str:
        return json.dumps({"id": self.id, "fileId": self.file_id, "userId": self.user_id}, sort_keys=True)

    @classmethod
    def from_payload(cls, raw: str) -> "ThumbnailJob":
        """解析队列载荷；字段缺失或类型错误时抛出 ``ValueError``。"""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed job payload: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("Malformed job payload")
        if data.get("fileId") in (None, ""):
            raise ValueError("Missing fileId")
        if data.get("userId") in (None, ""):
            raise ValueError("Missing userId")
        return cls(
            file_id=int(data["fileId"]),
            user_id=int(data["userId"]),
            id=str(data.get("id") or uuid.uuid4().hex),
            raw=raw,
        )


@dataclass(frozen=True)
class JobFailure:
    job_id: str
    file_id: Optional[int]
    user_id: Optional[int]
    error: str
    permanent: bool

    def to_dict(self) -> dict:
        return {
            "jobId": self.job_id,
            "fileId": self.file_id,
            "userId": self.user_id,
            "error": self.error,
            "permanent": self.permanent,
        }


FailureListener = Callable[[JobFailure], None]


class JobQueue:
    """队列接口。"""

    def __init__(self) -> None:
        self._listeners: list[FailureListener] = []

    def enqueue(self, job: ThumbnailJob) -> ThumbnailJob:  # pragma: no cover - interface definition
        raise NotImplementedError

    def dequeue(self, timeout: float = 1.0) -> Optional[ThumbnailJob]:  # pragma: no cover
        raise NotImplementedError

    def ack(self, job: ThumbnailJob) -> None:  # pragma: no cover
        raise NotImplementedError

    def requeue_inflight(self) -> int:  # pragma: no cover
        raise NotImplementedError

    def _store_failure(self, failure: JobFailure) -> None:  # pragma: no cover
        raise NotImplementedError

    def failures(self) -> list[JobFailure]:  # pragma: no cover
        raise NotImplementedError

    def is_alive(self) -> bool:  # pragma: no cover
        raise NotImplementedError

    def on_failed(self, listener: FailureListener) -> None:
        self._listeners.append(listener)

    def report_failure(self, failure: JobFailure) -> None:
        """单向失败通知：持久化失败记录并逐个回调监听器。"""
        self._store_failure(failure)
        for listener in list(self._listeners):
            try:
                listener(failure)
            except Exception:
                logger.exception("Failure listener raised for thumbnail job %s", failure.job_id)


class RedisJobQueue(JobQueue):
    def __init__(self, name: str, url: Optional[str] = None, *, client: Optional[redis.Redis] = None) -> None:
        super().__init__()
        self._client = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self._client.ping()
        self.name = name
        self.processing_name = f"{name}:processing"
        self.failed_name = f"{name}:failed"

    def enqueue(self, job: ThumbnailJob) -> ThumbnailJob:
        self._client.lpush(self.name, job.to_payload())
        return job

    def dequeue(self, timeout: float = 1.0) -> Optional[ThumbnailJob]:
        if timeout:
            raw = self._client.blmove(self.name, self.processing_name, timeout, src="RIGHT", dest="LEFT")
        else:
            # BLMOVE 的超时为 0 表示无限阻塞，立即返回需要改用 LMOVE
            raw = self._client.lmove(self.name, self.processing_name, src="RIGHT", dest="LEFT")
        if raw is None:
            return None
        try:
            return ThumbnailJob.from_payload(raw)
        except ValueError as exc:
            # 载荷本身损坏，无法重试：直接移出处理中列表并上报
            self._client.lrem(self.processing_name, 1, raw)
            self.report_failure(JobFailure(job_id="unknown", file_id=None, user_id=None, error=str(exc), permanent=True))
            return None

    def ack(self, job: ThumbnailJob) -> None:
        self._client.lrem(self.processing_name, 1, job.raw or job.to_payload())

    def requeue_inflight(self) -> int:
        # 处理中列表不区分 worker，其它仍存活的 worker 正在处理的任务也会被放回；
        # 任务幂等，重复处理只会覆盖同名缩略图
        moved = 0
        while self._client.lmove(self.processing_name, self.name, src="RIGHT", dest="RIGHT") is not None:
            moved += 1
        return moved

    def _store_failure(self, failure: JobFailure) -> None:
        self._client.lpush(self.failed_name, json.dumps(failure.to_dict(), sort_keys=True))

    def failures(self) -> list[JobFailure]:
        records = []
        for raw in self._client.lrange(self.failed_name, 0, -1):
            data = json.loads(raw)
            records.append(
                JobFailure(
                    job_id=data["jobId"],
                    file_id=data.get("fileId"),
                    user_id=data.get("userId"),
                    error=data["error"],
                    permanent=bool(data["permanent"]),
                )
            )
        return records

    def is_alive(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False


class InMemoryJobQueue(JobQueue):
    """进程内队列：适用于测试与内嵌 worker 模式，不跨进程共享。"""

    def __init__(self) -> None:
        super().__init__()
        self._queue: "queue.Queue[ThumbnailJob]" = queue.Queue()
        self._inflight: dict[str, ThumbnailJob] = {}
        self._failures: list[JobFailure] = []
        self._lock = threading.Lock()

    def enqueue(self, job: ThumbnailJob) -> ThumbnailJob:
        self._queue.put(job)
        return job

    def dequeue(self, timeout: float = 1.0) -> Optional[ThumbnailJob]:
        try:
            job = self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
        except queue.Empty:
            return None
        with self._lock:
            self._inflight[job.id] = job
        return job

    def ack(self, job: ThumbnailJob) -> None:
        with self._lock:
            self._inflight.pop(job.id, None)

    def requeue_inflight(self) -> int:
        with self._lock:
            pending = list(self._inflight.values())
            self._inflight.clear()
        for job in pending:
            self._queue.put(job)
        return len(pending)

    def _store_failure(self, failure: JobFailure) -> None:
        with self._lock:
            self._failures.append(failure)

    def failures(self) -> list[JobFailure]:
        with self._lock:
            return list(self._failures)

    def pending_count(self) -> int:
        return self._queue.qsize()

    def is_alive(self) -> bool:
        return True


_queue: Optional[JobQueue] = None


def init_queue(backend: Optional[JobQueue] = None, *, allow_memory_fallback: Optional[bool] = None) -> JobQueue:
    """显式初始化任务队列；未指定 backend 时连接 Redis。

    内存队列只在同进程内有消费者（内嵌 worker）时才可作为回退，否则任务会无声丢失，
    因此默认仅在 ``EMBEDDED_WORKER`` 开启时回退，其余情况直接抛出连接错误。
    """
    global _queue
    if backend is not None:
        _queue = backend
        return _queue
    if _queue is not None:
        return _queue

    settings = get_settings()
    if allow_memory_fallback is None:
        allow_memory_fallback = settings.embedded_worker
    try:
        _queue = RedisJobQueue(settings.queue_name, settings.redis_url)
        logger.info("Thumbnail queue '%s' initialized with Redis at %s", settings.queue_name, settings.redis_url)
    except redis.RedisError as exc:
        if not allow_memory_fallback:
            logger.error("Redis unavailable (%s), thumbnail queue cannot start", exc)
            raise
        logger.warning("Redis unavailable (%s), embedded worker will use an in-memory thumbnail queue", exc)
        _queue = InMemoryJobQueue()
    return _queue


def get_queue() -> JobQueue:
    if _queue is None:
        return init_queue()
    return _queue


def enqueue_thumbnail_job(*, file_id: int, user_id: int) -> ThumbnailJob:
    """在图片元数据提交之后调用，投递缩略图生成任务。"""
    job = get_queue().enqueue(ThumbnailJob(file_id=file_id, user_id=user_id))
    logger.info(
        "Thumbnail job %s %s for file %s (user %s)",
        job.id,
        JobStatusEnum.QUEUED.value,
        file_id,
        user_id,
    )
    return job
