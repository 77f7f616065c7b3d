"""应用入口：负责创建 FastAPI 实例并绑定生命周期事件。"""

import threading
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from files_manager.api.v1 import api_router
from files_manager.core.config import get_settings
from files_manager.core.exceptions import generic_exception_handler, http_exception_handler
from files_manager.core.logger import logger, setup_logging
from files_manager.core.responses import create_response
from files_manager.core.session import init_token_store
from files_manager.db.init_db import init_db
from files_manager.middleware.request_id import RequestIdMiddleware
from files_manager.services.job_queue import init_queue

setup_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时依次完成数据库、令牌存储与任务队列的初始化，之后才开始处理请求。"""
    init_db()
    init_token_store()
    init_queue()

    stop_event = threading.Event()
    worker_thread = None
    if settings.embedded_worker:
        from files_manager.worker import start_background_worker

        worker_thread = start_background_worker(stop_event)
        logger.info("Embedded thumbnail worker started")

    logger.info("SUCCESS - Application running at http://127.0.0.1:%s", settings.app_port)
    yield

    stop_event.set()
    if worker_thread is not None:
        worker_thread.join(timeout=5)


app = FastAPI(title=settings.project_name, debug=settings.debug, lifespan=lifespan)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request, exc):  # pragma: no cover - framework glue
    """将 ``HTTPException`` 转换为统一的响应结构。"""
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def custom_generic_exception_handler(request, exc):  # pragma: no cover - framework glue
    """捕获未预料异常（如数据库、Redis 不可用）并包装为标准错误响应。"""
    return await generic_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):  # pragma: no cover - framework glue
    """统一处理请求体验证失败的场景。"""
    def _serialize(obj: Any) -> Any:
        if isinstance(obj, Exception):
            return str(obj)
        if isinstance(obj, dict):
            return {key: _serialize(value) for key, value in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [_serialize(item) for item in obj]
        if isinstance(obj, bytes):
            return obj.decode("utf-8", errors="replace")
        return obj

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_response(
            "Request validation failed",
            _serialize(exc.errors()),
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        ),
    )


@app.get("/health")
async def health_check() -> dict:
    """提供健康检查接口，便于编排器与监控系统探活。"""
    return create_response("OK", {"status": "healthy"})


app.include_router(api_router, prefix=settings.api_v1_str)
