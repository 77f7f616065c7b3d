"""认证服务：基于 Basic 凭证登录签发令牌，以及注销。"""

from typing import Optional

from sqlalchemy.orm import Session

from files_manager.core.exceptions import AuthenticationError
from files_manager.core.logger import logger
from files_manager.core.security import parse_basic_credentials
from files_manager.core.session import issue_token, revoke_token
from files_manager.services.user_service import user_service


class AuthService:
    """负责处理登录与注销流程。"""

    def connect(self, db: Session, *, authorization: Optional[str]) -> str:
        """校验 ``Authorization: Basic`` 凭证并签发 24 小时有效的令牌。"""
        credentials = parse_basic_credentials(authorization)
        if credentials is None:
            raise AuthenticationError()

        email, password = credentials
        user = user_service.verify(db, email=email, password=password)
        if user is None:
            logger.info("Failed login attempt")
            raise AuthenticationError()

        token = issue_token(user.id)
        logger.info("User %s logged in", user.id)
        return token

    def disconnect(self, token: Optional[str]) -> None:
        if not revoke_token(token):
            raise AuthenticationError()


auth_service = AuthService()
