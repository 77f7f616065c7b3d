"""FileNode CRUD。"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from files_manager.crud.base import CRUDBase
from files_manager.models.file_node import FileNode


class CRUDFileNode(CRUDBase[FileNode]):
    def get_owned(self, db: Session, *, node_id: int, user_id: int) -> FileNode | None:
        return (
            self.query(db)
            .filter(FileNode.id == node_id)
            .filter(FileNode.user_id == user_id)
            .first()
        )

    def list_children(
        self,
        db: Session,
        *,
        user_id: int,
        parent_id: int,
        skip: int,
        limit: int,
    ) -> list[FileNode]:
        return (
            self.query(db)
            .filter(FileNode.user_id == user_id)
            .filter(FileNode.parent_id == parent_id)
            .order_by(FileNode.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def set_public(self, db: Session, *, node_id: int, user_id: int, is_public: bool) -> FileNode | None:
        """单条 UPDATE 语句完成可见性切换，并发写入时后写者生效。"""
        result = db.execute(
            update(FileNode)
            .where(FileNode.id == node_id, FileNode.user_id == user_id)
            .values(is_public=is_public)
        )
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        if result.rowcount == 0:
            return None
        return self.get_owned(db, node_id=node_id, user_id=user_id)


file_node_crud = CRUDFileNode(FileNode)
