"""用户与认证相关的请求与响应模型。

请求字段均为可选：缺失字段由服务层统一返回 400 及明确的提示信息。
"""

from typing import Optional

from pydantic import BaseModel

from files_manager.api.v1.schemas.common import ResponseEnvelope


class UserCreateBody(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserData(BaseModel):
    id: int
    email: str


class TokenData(BaseModel):
    token: str


class StatusData(BaseModel):
    redis: bool
    db: bool


class StatsData(BaseModel):
    users: int
    files: int


UserResponse = ResponseEnvelope[UserData]
TokenResponse = ResponseEnvelope[TokenData]
StatusResponse = ResponseEnvelope[StatusData]
StatsResponse = ResponseEnvelope[StatsData]
