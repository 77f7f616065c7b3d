"""缩略图 worker：从共享队列消费任务并生成缩略图。

独立进程运行：``python -m files_manager.worker``；
也可通过 ``EMBEDDED_WORKER=true`` 以后台线程形式随 API 进程启动（仅适用于单进程部署）。
"""

from __future__ import annotations

import signal
import threading
from typing import Optional

from files_manager.core.exceptions import ThumbnailJobError
from files_manager.core.logger import logger, set_context_id, setup_logging
from files_manager.db import session as db_session
from files_manager.db.init_db import init_db
from files_manager.services.blob_store import LocalBlobStore
from files_manager.services.job_queue import (
    JobFailure,
    JobQueue,
    JobStatusEnum,
    ThumbnailJob,
    get_queue,
    init_queue,
)
from files_manager.services.thumbnail_service import ThumbnailService, thumbnail_service


class ThumbnailWorker:
    """单个消费循环；多个 worker（进程或线程）可同时消费同一队列。"""

    def __init__(
        self,
        queue: Optional[JobQueue] = None,
        *,
        service: Optional[ThumbnailService] = None,
        blob_store: Optional[LocalBlobStore] = None,
        poll_timeout: float = 1.0,
    ) -> None:
        self.queue = queue or get_queue()
        self.service = service or thumbnail_service
        self.blob_store = blob_store
        self.poll_timeout = poll_timeout

    def handle(self, job: ThumbnailJob) -> bool:
        """处理单个任务，成功返回 ``True``；失败通过队列的失败通道上报，不会重试。"""
        set_context_id(job.id)
        logger.info("Thumbnail job %s %s (file %s)", job.id, JobStatusEnum.PROCESSING.value, job.file_id)
        db = db_session.SessionLocal()
        try:
            self.service.process_job(db, job, blob_store=self.blob_store)
        except ThumbnailJobError as exc:
            self._fail(job, str(exc), permanent=exc.permanent)
            return False
        except Exception as exc:
            logger.exception("Thumbnail job %s crashed", job.id)
            self._fail(job, str(exc), permanent=False)
            return False
        else:
            logger.info("Thumbnail job %s completed, thumbnails %s for file %s", job.id, JobStatusEnum.READY.value, job.file_id)
            return True
        finally:
            db.close()
            self.queue.ack(job)
            set_context_id(None)

    def drain(self) -> int:
        """处理当前队列中的全部任务后返回，主要用于测试与运维脚本。"""
        handled = 0
        while True:
            job = self.queue.dequeue(timeout=0)
            if job is None:
                return handled
            self.handle(job)
            handled += 1

    def run(self, stop_event: threading.Event) -> None:
        requeued = self.queue.requeue_inflight()
        if requeued:
            logger.info("Requeued %s in-flight thumbnail jobs", requeued)
        logger.info("Thumbnail worker started")
        while not stop_event.is_set():
            job = self.queue.dequeue(timeout=self.poll_timeout)
            if job is not None:
                self.handle(job)
        logger.info("Thumbnail worker stopped")

    def _fail(self, job: ThumbnailJob, error: str, *, permanent: bool) -> None:
        logger.error(
            "Thumbnail job %s %s: %s (%s)",
            job.id,
            JobStatusEnum.FAILED.value,
            error,
            "permanent" if permanent else "partial",
        )
        self.queue.report_failure(
            JobFailure(job_id=job.id, file_id=job.file_id, user_id=job.user_id, error=error, permanent=permanent)
        )


def start_background_worker(stop_event: threading.Event) -> threading.Thread:
    worker = ThumbnailWorker()
    thread = threading.Thread(target=worker.run, args=(stop_event,), name="thumbnail-worker", daemon=True)
    thread.start()
    return thread


def main() -> None:  # pragma: no cover - process entrypoint
    setup_logging(role="worker")
    init_db()
    init_queue()

    stop_event = threading.Event()

    def _stop(signum, frame):
        logger.info("Received signal %s, shutting down thumbnail worker", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    ThumbnailWorker().run(stop_event)


if __name__ == "__main__":  # pragma: no cover
    main()
