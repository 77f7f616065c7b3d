"""认证相关路由定义。"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.orm import Session

from files_manager.api.v1.schemas.users import TokenResponse
from files_manager.core.dependencies import get_current_user_id, get_db, get_token
from files_manager.core.responses import create_response
from files_manager.services.auth_service import auth_service

router = APIRouter(tags=["auth"])


@router.get("/connect", response_model=TokenResponse)
def connect(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    """Basic 认证登录，成功后返回 24 小时有效的令牌。"""
    token = auth_service.connect(db, authorization=authorization)
    return create_response("OK", {"token": token})


@router.get("/disconnect", status_code=status.HTTP_204_NO_CONTENT)
def disconnect(
    _: int = Depends(get_current_user_id),
    token: Optional[str] = Depends(get_token),
) -> Response:
    auth_service.disconnect(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
