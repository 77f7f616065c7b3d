"""文件节点请求/响应模型。"""

from typing import Optional, Union

from pydantic import BaseModel

from files_manager.api.v1.schemas.common import ResponseEnvelope
from files_manager.core.constants import ROOT_PARENT_ID


class FileCreateBody(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    parentId: Union[int, str] = ROOT_PARENT_ID
    isPublic: bool = False
    # base64 编码的文件内容，目录可省略
    data: Optional[str] = None


class FileNodeData(BaseModel):
    id: int
    userId: int
    name: str
    type: str
    isPublic: bool
    parentId: int


FileNodeResponse = ResponseEnvelope[FileNodeData]
FileNodeListResponse = ResponseEnvelope[list[FileNodeData]]
