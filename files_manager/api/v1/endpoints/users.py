"""用户注册与个人信息路由。"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from files_manager.api.v1.schemas.users import UserCreateBody, UserResponse
from files_manager.core.constants import HTTP_STATUS_CREATED
from files_manager.core.dependencies import get_current_user, get_db
from files_manager.core.responses import create_response
from files_manager.models.user import User
from files_manager.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(payload: Optional[UserCreateBody] = None, db: Session = Depends(get_db)):
    payload = payload or UserCreateBody()
    user = user_service.create_user(db, email=payload.email, password=payload.password)
    return create_response("Created", user_service.serialize(user), HTTP_STATUS_CREATED)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return create_response("OK", user_service.serialize(current_user))
