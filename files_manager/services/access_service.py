"""访问控制：决定调用方能否读取某个文件的内容。

内部使用带标签的结果（Found / NotVisible / Absent）保留判定依据，
仅在 HTTP 边界统一折叠为 404，避免向无权调用方暴露私有资源是否存在。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from files_manager.core.config import get_settings
from files_manager.core.exceptions import NotFoundError, UnsupportedOperationError
from files_manager.core.logger import logger
from files_manager.crud.file_nodes import file_node_crud
from files_manager.models.file_node import FileNode
from files_manager.services.blob_store import LocalBlobStore, get_blob_store, guess_mime_type
from files_manager.services.file_service import parse_node_id


@dataclass(frozen=True)
class Found:
    node: FileNode


@dataclass(frozen=True)
class NotVisible:
    node_id: int


@dataclass(frozen=True)
class Absent:
    pass


ReadOutcome = Union[Found, NotVisible, Absent]


def parse_variant_size(size: Optional[str]) -> Optional[int]:
    """解析 ``size`` 查询参数；不是受支持的缩略图宽度时返回 ``None``（即读取原文件）。"""
    if size is None:
        return None
    try:
        width = int(str(size).strip())
    except ValueError:
        return None
    return width if width in get_settings().thumbnail_widths else None


class AccessService:
    def can_read(self, node: FileNode, requester_id: Optional[int]) -> bool:
        if node.is_public:
            return True
        return requester_id is not None and requester_id == node.user_id

    def resolve_readable(self, db: Session, *, node_id, requester_id: Optional[int]) -> ReadOutcome:
        parsed = parse_node_id(node_id)
        if parsed is None:
            return Absent()
        node = file_node_crud.get(db, parsed)
        if node is None:
            return Absent()
        if not self.can_read(node, requester_id):
            return NotVisible(node_id=parsed)
        return Found(node=node)

    def assert_readable_content(self, node: FileNode) -> None:
        if node.is_folder:
            raise UnsupportedOperationError("A folder doesn't have content")

    def read_content(
        self,
        db: Session,
        *,
        node_id,
        requester_id: Optional[int],
        size: Optional[str] = None,
        blob_store: Optional[LocalBlobStore] = None,
    ) -> tuple[bytes, str]:
        """返回 ``(字节内容, content-type)``；缩略图尚未生成时与不存在同样报 404。"""
        outcome = self.resolve_readable(db, node_id=node_id, requester_id=requester_id)
        if isinstance(outcome, NotVisible):
            logger.debug("Content of file %s hidden from requester %s", outcome.node_id, requester_id)
            raise NotFoundError()
        if not isinstance(outcome, Found):
            raise NotFoundError()

        node = outcome.node
        self.assert_readable_content(node)
        if not node.local_path:
            raise NotFoundError()

        store = blob_store or get_blob_store()
        width = parse_variant_size(size)
        path = store.variant_path(node.local_path, width) if width else node.local_path
        data = store.read(path)
        return data, guess_mime_type(node.name)


access_service = AccessService()
