"""响应外层结构：所有 JSON 接口都返回 ``{msg, data, code}``。"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ResponseEnvelope(BaseModel, Generic[DataT]):
    msg: str
    data: Optional[DataT] = None
    code: int
