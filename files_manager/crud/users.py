"""用户 CRUD。"""

from __future__ import annotations

from sqlalchemy.orm import Session

from files_manager.crud.base import CRUDBase
from files_manager.models.user import User


class CRUDUser(CRUDBase[User]):
    def get_by_email(self, db: Session, email: str) -> User | None:
        return self.query(db).filter(User.email == email).first()


user_crud = CRUDUser(User)
