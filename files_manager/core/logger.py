"""日志配置模块：API 与缩略图 worker 共用的输出格式、上下文字段与处理器。

每条日志都会带上 ``role``（api / worker）与当前上下文 ID：
API 请求使用 ``X-Request-ID``，worker 使用正在处理的任务 ID。
"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Optional

from .config import get_settings

_context_id: ContextVar[Optional[str]] = ContextVar("context_id", default=None)
_role = "api"

TEXT_FORMAT = "%(asctime)s [%(role)s] %(levelname)s %(name)s [%(context_id)s] %(message)s"


class _LocalTimeFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        return dt.strftime(datefmt) if datefmt else dt.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_LocalTimeFormatter):
    """终端输出按级别着色；非 TTY（如容器日志采集）时自动关闭颜色。"""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(self, fmt: str = TEXT_FORMAT, datefmt: Optional[str] = None, use_colors: Optional[bool] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{message}{self.RESET}" if color else message


class JsonFormatter(_LocalTimeFormatter):
    """每行一个 JSON 对象，便于集中式日志检索。"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "role": getattr(record, "role", _role),
            "logger": record.name,
            "level": record.levelname,
            "context_id": getattr(record, "context_id", None),
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.role = _role
        record.context_id = _context_id.get() or "-"
        return True


def setup_logging(role: str = "api") -> None:
    """初始化日志系统；worker 进程以 ``role="worker"`` 调用。"""
    global _role
    _role = role

    settings = get_settings()
    settings.log_directory.mkdir(parents=True, exist_ok=True)
    console_formatter = "json" if settings.log_json else "color"
    handlers = ["console", "file"]
    loggers = {
        name: {"handlers": handlers, "level": settings.log_level, "propagate": False}
        for name in ("files_manager", "uvicorn", "uvicorn.access")
    }
    # Pillow 在 DEBUG 级别会逐块输出解码细节
    loggers["PIL"] = {"level": "INFO"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"context": {"()": "files_manager.core.logger.ContextFilter"}},
            "formatters": {
                "color": {"()": "files_manager.core.logger.ColorFormatter"},
                "text": {"()": "files_manager.core.logger._LocalTimeFormatter", "fmt": TEXT_FORMAT},
                "json": {"()": "files_manager.core.logger.JsonFormatter"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": settings.log_level,
                    "formatter": console_formatter,
                    "filters": ["context"],
                },
                "file": {
                    "class": "logging.handlers.TimedRotatingFileHandler",
                    "level": settings.log_level,
                    "formatter": "json" if settings.log_json else "text",
                    "filename": str(settings.log_file_path),
                    "when": "midnight",
                    "backupCount": 14,
                    "encoding": "utf-8",
                    "delay": True,
                    "filters": ["context"],
                },
            },
            "loggers": loggers,
            "root": {"handlers": handlers, "level": settings.log_level},
        }
    )


logger = logging.getLogger("files_manager")


def set_context_id(value: Optional[str]) -> None:
    """绑定当前请求或任务的 ID，之后的日志都会携带它。"""
    _context_id.set(value)


def get_context_id() -> Optional[str]:
    return _context_id.get()
