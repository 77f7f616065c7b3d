"""配置模块：API 进程与缩略图 worker 共用的环境变量设置。

加载顺序：项目根目录下的 ``.env``，随后是 ``ENV_FILE`` 指定的文件（覆盖前者），
最后以进程环境变量为准。
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def load_env_files(root: Path = PROJECT_ROOT) -> None:
    """把 ``.env`` 与 ``ENV_FILE`` 读入 ``os.environ``，已存在的进程变量不会被 ``.env`` 覆盖。"""
    default_env = root / ".env"
    if default_env.is_file():
        load_dotenv(default_env, override=False, encoding="utf-8")

    override = os.getenv("ENV_FILE")
    if override:
        path = Path(override)
        if not path.is_absolute():
            path = root / path
        if path.is_file():
            load_dotenv(path, override=True, encoding="utf-8")


load_env_files()


class Settings(BaseSettings):
    """所有字段都可以通过同名（别名）环境变量覆盖。"""

    project_name: str = Field(default="Files Manager API", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")
    app_port: int = Field(default=5000, alias="APP_PORT")

    # 元数据库：DATABASE_URL 优先，否则按分项拼接 PostgreSQL 连接串
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_host: str = Field(default="localhost", alias="DATABASE_HOST")
    database_port: int = Field(default=5432, alias="DATABASE_PORT")
    database_user: str = Field(default="postgres", alias="DATABASE_USER")
    database_password: str = Field(default="postgres", alias="DATABASE_PASSWORD")
    database_name: str = Field(default="files_manager", alias="DATABASE_NAME")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Redis：令牌存储与缩略图队列共用
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_db: int = Field(default=0, alias="REDIS_DB")
    token_ttl_seconds: int = Field(default=60 * 60 * 24, alias="TOKEN_TTL_SECONDS")
    queue_name: str = Field(default="fileQueue", alias="QUEUE_NAME")
    embedded_worker: bool = Field(default=False, alias="EMBEDDED_WORKER")

    # 文件存储与列表
    folder_path: str = Field(default="/tmp/files_manager", alias="FOLDER_PATH")
    page_size: int = Field(default=20, alias="PAGE_SIZE", gt=0)
    thumbnail_widths_raw: str = Field(default="500,250,100", alias="THUMBNAIL_WIDTHS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    model_config = SettingsConfigDict(extra="ignore")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def sql_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def storage_root(self) -> Path:
        """文件存储根目录；相对路径按项目根目录解析。"""
        return self._absolute(self.folder_path)

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def log_directory(self) -> Path:
        return self._absolute(self.log_dir)

    @property
    def timezone_info(self) -> ZoneInfo:
        """日志时间戳使用的时区，无法识别时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")

    @property
    def thumbnail_widths(self) -> list[int]:
        """缩略图宽度，按配置顺序；默认 500、250、100。"""
        return [int(item) for item in self.thumbnail_widths_raw.replace(" ", "").split(",") if item]

    @staticmethod
    def _absolute(raw: str) -> Path:
        path = Path(raw)
        return path if path.is_absolute() else PROJECT_ROOT / path


@lru_cache
def get_settings() -> Settings:
    return Settings()
