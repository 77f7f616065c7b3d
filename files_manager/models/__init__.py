"""模型包初始化，便于统一导入 ORM 实体并触发模型注册。"""

from files_manager.models.file_node import FileNode, FileTypeEnum
from files_manager.models.user import User

__all__ = [
    "FileNode",
    "FileTypeEnum",
    "User",
]
