"""用户模型：描述可上传与管理文件的账号。"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from files_manager.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """用户实体；密码仅以 bcrypt 哈希形式保存。"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
