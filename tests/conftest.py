"""测试夹具：为 pytest 提供数据库、令牌/队列后端、文件存储与客户端的共享配置。"""

import os
import tempfile
from typing import Generator

_TEST_ROOT = tempfile.mkdtemp(prefix="files_manager_tests_")
TEST_DB_PATH = os.path.join(_TEST_ROOT, "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入应用模块之前写入，配置对象会被缓存
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["LOG_DIR"] = os.path.join(_TEST_ROOT, "log")
os.environ["FOLDER_PATH"] = os.path.join(_TEST_ROOT, "files")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from files_manager.core.dependencies import get_db  # noqa: E402
from files_manager.core.session import InMemoryTokenBackend, init_token_store  # noqa: E402
from files_manager.db import session as db_session  # noqa: E402
from files_manager.db.init_db import init_db  # noqa: E402
from files_manager.main import app  # noqa: E402
from files_manager.services.blob_store import LocalBlobStore, set_blob_store  # noqa: E402
from files_manager.services.job_queue import InMemoryJobQueue, init_queue  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture()
def token_backend() -> InMemoryTokenBackend:
    return init_token_store(InMemoryTokenBackend())


@pytest.fixture()
def job_queue() -> InMemoryJobQueue:
    return init_queue(InMemoryJobQueue())


@pytest.fixture()
def blob_store(tmp_path) -> LocalBlobStore:
    store = LocalBlobStore(tmp_path / "blobs")
    set_blob_store(store)
    return store


@pytest.fixture(autouse=True)
def isolated_backends(token_backend, job_queue, blob_store):
    """每个用例使用独立的令牌存储、任务队列与文件根目录。"""
    yield


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    """构建 FastAPI TestClient，并注入测试专用的数据库依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

