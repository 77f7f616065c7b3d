"""文件节点模型（目录、普通文件与图片合并为一张表）。

存储规则：
- parent_id：父目录节点 ID，根目录使用哨兵值 0（不建外键，校验在创建时完成）；
- type：folder / file / image；
- local_path：仅 file 与 image 有值，指向存储根目录下的原始文件；目录恒为 NULL；
- is_public：唯一可变字段，只能通过公开/取消公开接口修改。
"""

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from files_manager.core.constants import ROOT_PARENT_ID
from files_manager.models.base import Base, TimestampMixin


class FileTypeEnum(str, Enum):
    FOLDER = "folder"
    FILE = "file"
    IMAGE = "image"


class FileNode(TimestampMixin, Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(16))
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    parent_id: Mapped[int] = mapped_column(Integer, default=ROOT_PARENT_ID, index=True)
    local_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    @property
    def is_folder(self) -> bool:
        return self.type == FileTypeEnum.FOLDER.value
