"""用户服务：注册、凭证校验与个人信息。"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from files_manager.core.exceptions import AlreadyExistsError, ValidationError
from files_manager.core.logger import logger
from files_manager.core.security import get_password_hash, verify_password
from files_manager.crud.users import user_crud
from files_manager.models.user import User


class UserService:
    def create_user(self, db: Session, *, email: Optional[str], password: Optional[str]) -> User:
        """创建新用户；邮箱已存在时抛出 ``AlreadyExistsError``。"""
        if not email:
            raise ValidationError("Missing email")
        if not password:
            raise ValidationError("Missing password")

        if user_crud.get_by_email(db, email) is not None:
            raise AlreadyExistsError()

        try:
            user = user_crud.create(db, {"email": email, "hashed_password": get_password_hash(password)})
        except IntegrityError as exc:
            # 并发注册同一邮箱时由唯一约束兜底
            raise AlreadyExistsError() from exc
        logger.info("User %s registered", user.id)
        return user

    def verify(self, db: Session, *, email: str, password: str) -> Optional[User]:
        user = user_crud.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    def get(self, db: Session, user_id: int) -> Optional[User]:
        return user_crud.get(db, user_id)

    def count_users(self, db: Session) -> int:
        return user_crud.count(db)

    @staticmethod
    def serialize(user: User) -> dict:
        return {"id": user.id, "email": user.email}


user_service = UserService()
