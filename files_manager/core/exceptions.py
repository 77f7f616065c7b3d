"""异常处理模块：定义统一的业务异常与响应格式。

业务异常统一继承 ``AppException``，由全局处理器转换为 ``{msg, data, code}`` 结构；
未预料的基础设施异常（数据库、Redis 不可用等）落入兜底处理器，返回通用 500。
"""

from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from files_manager.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data

    @property
    def msg(self) -> str:
        return self.detail


class AuthenticationError(AppException):
    """令牌缺失、无效、过期或凭证不匹配。"""

    def __init__(self, msg: str = "Unauthorized") -> None:
        super().__init__(msg, status.HTTP_401_UNAUTHORIZED)


class ValidationError(AppException):
    """请求字段缺失或格式不合法，任何写入发生之前即被拒绝。"""

    def __init__(self, msg: str) -> None:
        super().__init__(msg, status.HTTP_400_BAD_REQUEST)


class AlreadyExistsError(ValidationError):
    def __init__(self, msg: str = "Already exist") -> None:
        super().__init__(msg)


class HierarchyError(ValidationError):
    """父节点校验失败。"""


class ParentNotFoundError(HierarchyError):
    def __init__(self) -> None:
        super().__init__("Parent not found")


class ParentNotFolderError(HierarchyError):
    def __init__(self) -> None:
        super().__init__("Parent is not a folder")


class NotFoundError(AppException):
    """资源不存在，或调用方无权查看（两者对外不可区分）。"""

    def __init__(self, msg: str = "Not found") -> None:
        super().__init__(msg, status.HTTP_404_NOT_FOUND)


class BlobNotFoundError(NotFoundError):
    def __init__(self, local_path: str) -> None:
        super().__init__()
        self.local_path = local_path


class UnsupportedOperationError(AppException):
    def __init__(self, msg: str) -> None:
        super().__init__(msg, status.HTTP_400_BAD_REQUEST)


class ThumbnailJobError(Exception):
    """缩略图任务失败。

    ``permanent`` 为 True 表示任务本身无法成功（归属不符、源文件缺失），
    否则为部分失败：``failed_widths`` 列出未能写入的尺寸。
    """

    def __init__(self, message: str, *, permanent: bool, failed_widths: Optional[list[int]] = None) -> None:
        super().__init__(message)
        self.permanent = permanent
        self.failed_widths = failed_widths or []


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = {
        "msg": "Server error",
        "data": None,
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
