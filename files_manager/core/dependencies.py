"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。"""

from collections.abc import Generator
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from files_manager.core.constants import TOKEN_HEADER
from files_manager.core.exceptions import AuthenticationError
from files_manager.core.session import resolve_token
from files_manager.crud.users import user_crud
from files_manager.db import session as db_session
from files_manager.models.user import User


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_token(x_token: Optional[str] = Header(default=None, alias=TOKEN_HEADER)) -> Optional[str]:
    return x_token or None


def get_optional_user_id(token: Optional[str] = Depends(get_token)) -> Optional[int]:
    """可选认证：令牌缺失或无效时返回 ``None``，用于公开文件的内容读取。"""
    return resolve_token(token)


def get_current_user_id(user_id: Optional[int] = Depends(get_optional_user_id)) -> int:
    """解析 ``X-Token`` 头部并返回用户 ID，不存在或已过期时抛出 401。"""
    if user_id is None:
        raise AuthenticationError()
    return user_id


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = user_crud.get(db, user_id)
    if user is None:
        raise AuthenticationError()
    return user
