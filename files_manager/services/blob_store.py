"""本地文件存储：在受管根目录下保存与读取原始文件字节。

- 上传文件以新生成的 uuid4 命名，互不冲突；
- 缩略图与原文件同目录，命名为 ``<原文件名>_<宽度>``，可幂等覆盖；
- 不做任何缓存，每次读取都直接访问文件系统。
"""

from __future__ import annotations

import mimetypes
import os
import uuid
from pathlib import Path
from typing import Optional

from files_manager.core.config import get_settings
from files_manager.core.constants import DEFAULT_MIME_TYPE
from files_manager.core.exceptions import BlobNotFoundError
from files_manager.core.logger import logger


def guess_mime_type(name: str) -> str:
    mime, _ = mimetypes.guess_type(name or "")
    return mime or DEFAULT_MIME_TYPE


class LocalBlobStore:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _ensure_root(self) -> None:
        # exist_ok 保证多进程并发创建时不会报错
        self.root.mkdir(parents=True, exist_ok=True)

    def write(self, data: bytes) -> str:
        """写入新文件并返回其路径（作为 FileNode.local_path 持久化）。"""
        self._ensure_root()
        local_path = self.root / str(uuid.uuid4())
        with open(local_path, "wb") as f:
            f.write(data)
        return str(local_path)

    def read(self, local_path: str) -> bytes:
        try:
            with open(local_path, "rb") as f:
                return f.read()
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise BlobNotFoundError(local_path) from exc

    def exists(self, local_path: str) -> bool:
        return os.path.isfile(local_path)

    def discard(self, local_path: Optional[str]) -> None:
        """尽力删除一个刚写入但未能登记元数据的文件。"""
        if not local_path:
            return
        try:
            os.remove(local_path)
        except OSError as exc:
            logger.warning("Failed to discard orphaned blob %s: %s", local_path, exc)

    @staticmethod
    def variant_path(local_path: str, width: int) -> str:
        return f"{local_path}_{width}"

    def write_variant(self, local_path: str, width: int, data: bytes) -> str:
        """原子地写入（或覆盖）某个尺寸的缩略图。"""
        target = self.variant_path(local_path, width)
        tmp = f"{target}.{uuid.uuid4().hex}.tmp"
        try:
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, target)
        except Exception:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        return target


_blob_store: Optional[LocalBlobStore] = None


def get_blob_store() -> LocalBlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore(get_settings().storage_root)
    return _blob_store


def set_blob_store(store: LocalBlobStore) -> None:
    global _blob_store
    _blob_store = store
