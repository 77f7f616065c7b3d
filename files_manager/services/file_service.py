"""文件元数据服务：节点创建（含层级校验）、查询、分页列表与可见性切换。

上传流程的落盘顺序：先完成全部字段与父节点校验，再写入文件字节，最后提交元数据；
元数据是唯一可信来源，提交失败时尽力删除刚写入的文件。图片节点在元数据提交之后才投递缩略图任务。
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

import redis
from sqlalchemy.orm import Session

from files_manager.core.config import get_settings
from files_manager.core.constants import ROOT_PARENT_ID
from files_manager.core.exceptions import (
    ParentNotFolderError,
    ParentNotFoundError,
    ValidationError,
)
from files_manager.core.logger import logger
from files_manager.crud.file_nodes import file_node_crud
from files_manager.models.file_node import FileNode, FileTypeEnum
from files_manager.services.blob_store import LocalBlobStore, get_blob_store
from files_manager.services.job_queue import JobStatusEnum, enqueue_thumbnail_job

ALLOWED_TYPES = {item.value for item in FileTypeEnum}


def parse_node_id(value: Any) -> Optional[int]:
    """把外部传入的节点 ID 规范化为正整数，无法解析时返回 ``None``。"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def _is_root(parent_id: Any) -> bool:
    return parent_id in (None, ROOT_PARENT_ID, str(ROOT_PARENT_ID))


class FileService:
    """文件与目录元数据的唯一写入入口。"""

    # ----------------------------
    # 创建
    # ----------------------------
    def create_node(
        self,
        db: Session,
        *,
        owner_id: int,
        name: Optional[str],
        type: Optional[str],
        parent_id: Any = ROOT_PARENT_ID,
        is_public: bool = False,
        local_path: Optional[str] = None,
    ) -> FileNode:
        """校验并插入一个节点；非目录节点必须已由调用方写好文件并传入 ``local_path``。"""
        self._validate_fields(name=name, type=type, has_data=local_path is not None)
        resolved_parent = self._validate_parent(db, parent_id)
        return self._insert(
            db,
            owner_id=owner_id,
            name=name,
            type=type,
            parent_id=resolved_parent,
            is_public=is_public,
            local_path=local_path,
        )

    def upload(
        self,
        db: Session,
        *,
        owner_id: int,
        name: Optional[str],
        type: Optional[str],
        parent_id: Any = ROOT_PARENT_ID,
        is_public: bool = False,
        data: Optional[str] = None,
        blob_store: Optional[LocalBlobStore] = None,
    ) -> FileNode:
        """处理一次上传：校验 -> 写文件 -> 提交元数据 -> （图片）投递缩略图任务。"""
        self._validate_fields(name=name, type=type, has_data=bool(data))
        resolved_parent = self._validate_parent(db, parent_id)

        local_path: Optional[str] = None
        if type != FileTypeEnum.FOLDER.value:
            content = self._decode_data(data)
            store = blob_store or get_blob_store()
            local_path = store.write(content)
            try:
                node = self._insert(
                    db,
                    owner_id=owner_id,
                    name=name,
                    type=type,
                    parent_id=resolved_parent,
                    is_public=is_public,
                    local_path=local_path,
                )
            except Exception:
                store.discard(local_path)
                raise
        else:
            node = self._insert(
                db,
                owner_id=owner_id,
                name=name,
                type=type,
                parent_id=resolved_parent,
                is_public=is_public,
                local_path=None,
            )

        if node.type == FileTypeEnum.IMAGE.value:
            logger.info("Image %s %s by user %s", node.id, JobStatusEnum.UPLOADED.value, owner_id)
            try:
                enqueue_thumbnail_job(file_id=node.id, user_id=owner_id)
            except redis.RedisError:
                # 元数据已提交，上传本身视为成功；缩略图需人工重新投递
                logger.exception("Failed to enqueue thumbnail job for file %s", node.id)
        return node

    # ----------------------------
    # 查询
    # ----------------------------
    def get_node(self, db: Session, *, node_id: Any, owner_id: int) -> Optional[FileNode]:
        """按归属查询节点；ID 非法与不存在一律返回 ``None``。"""
        parsed = parse_node_id(node_id)
        if parsed is None:
            return None
        return file_node_crud.get_owned(db, node_id=parsed, user_id=owner_id)

    def list_nodes(self, db: Session, *, owner_id: int, parent_id: Any = ROOT_PARENT_ID, page: int = 0) -> list[FileNode]:
        """按插入顺序返回某父节点下的一页子节点；根哨兵只匹配顶层节点。"""
        if _is_root(parent_id):
            resolved_parent = ROOT_PARENT_ID
        else:
            resolved_parent = parse_node_id(parent_id)
            if resolved_parent is None:
                return []
        page_size = get_settings().page_size
        page = max(int(page or 0), 0)
        return file_node_crud.list_children(
            db,
            user_id=owner_id,
            parent_id=resolved_parent,
            skip=page * page_size,
            limit=page_size,
        )

    def count_nodes(self, db: Session) -> int:
        return file_node_crud.count(db)

    # ----------------------------
    # 可见性
    # ----------------------------
    def set_visibility(self, db: Session, *, node_id: Any, owner_id: int, is_public: bool) -> Optional[FileNode]:
        parsed = parse_node_id(node_id)
        if parsed is None:
            return None
        node = file_node_crud.set_public(db, node_id=parsed, user_id=owner_id, is_public=is_public)
        if node is not None:
            logger.info("File %s visibility set to %s by user %s", parsed, "public" if is_public else "private", owner_id)
        return node

    # ----------------------------
    # 序列化
    # ----------------------------
    @staticmethod
    def serialize(node: FileNode) -> dict[str, Any]:
        return {
            "id": node.id,
            "userId": node.user_id,
            "name": node.name,
            "type": node.type,
            "isPublic": bool(node.is_public),
            "parentId": node.parent_id,
        }

    # ----------------------------
    # helpers
    # ----------------------------
    def _validate_fields(self, *, name: Optional[str], type: Optional[str], has_data: bool) -> None:
        if not name or not name.strip():
            raise ValidationError("Missing name")
        if not type or type not in ALLOWED_TYPES:
            raise ValidationError("Missing type")
        if type != FileTypeEnum.FOLDER.value and not has_data:
            raise ValidationError("Missing data")

    def _validate_parent(self, db: Session, parent_id: Any) -> int:
        if _is_root(parent_id):
            return ROOT_PARENT_ID
        parsed = parse_node_id(parent_id)
        if parsed is None:
            raise ParentNotFoundError()
        parent = file_node_crud.get(db, parsed)
        if parent is None:
            raise ParentNotFoundError()
        if not parent.is_folder:
            raise ParentNotFolderError()
        return parsed

    @staticmethod
    def _decode_data(data: Optional[str]) -> bytes:
        """严格解码 base64：字母表之外的字符一律拒绝，缺失的结尾填充会被补齐。"""
        raw = (data or "").strip()
        raw += "=" * (-len(raw) % 4)
        try:
            return base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Invalid data") from exc

    def _insert(
        self,
        db: Session,
        *,
        owner_id: int,
        name: str,
        type: str,
        parent_id: int,
        is_public: bool,
        local_path: Optional[str],
    ) -> FileNode:
        node = file_node_crud.create(
            db,
            {
                "user_id": owner_id,
                "name": name,
                "type": type,
                "is_public": bool(is_public),
                "parent_id": parent_id,
                "local_path": local_path if type != FileTypeEnum.FOLDER.value else None,
            },
        )
        logger.info("File %s (%s) created by user %s under parent %s", node.id, node.type, owner_id, parent_id)
        return node


file_service = FileService()
