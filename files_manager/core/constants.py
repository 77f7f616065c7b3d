"""全局常量定义。"""

from fastapi import status

HTTP_STATUS_OK = status.HTTP_200_OK
HTTP_STATUS_CREATED = status.HTTP_201_CREATED
HTTP_STATUS_NO_CONTENT = status.HTTP_204_NO_CONTENT
HTTP_STATUS_BAD_REQUEST = status.HTTP_400_BAD_REQUEST
HTTP_STATUS_UNAUTHORIZED = status.HTTP_401_UNAUTHORIZED
HTTP_STATUS_NOT_FOUND = status.HTTP_404_NOT_FOUND
HTTP_STATUS_INTERNAL_SERVER_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR

TOKEN_HEADER = "X-Token"
TOKEN_KEY_PREFIX = "auth_"

# 父节点为根目录时使用的哨兵值
ROOT_PARENT_ID = 0

DEFAULT_MIME_TYPE = "application/octet-stream"
