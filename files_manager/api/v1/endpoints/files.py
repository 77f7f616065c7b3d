"""文件与文件夹路由：创建、查询、分页列表、公开状态切换与内容读取。"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from files_manager.api.v1.schemas.files import FileCreateBody, FileNodeListResponse, FileNodeResponse
from files_manager.core.constants import HTTP_STATUS_CREATED, ROOT_PARENT_ID
from files_manager.core.dependencies import get_current_user_id, get_db, get_optional_user_id
from files_manager.core.exceptions import NotFoundError
from files_manager.core.responses import create_response
from files_manager.services.access_service import access_service
from files_manager.services.file_service import file_service

router = APIRouter(prefix="/files", tags=["files"])


@router.post("", response_model=FileNodeResponse, status_code=status.HTTP_201_CREATED)
def create_file(
    payload: Optional[FileCreateBody] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    payload = payload or FileCreateBody()
    node = file_service.upload(
        db,
        owner_id=user_id,
        name=payload.name,
        type=payload.type,
        parent_id=payload.parentId,
        is_public=payload.isPublic,
        data=payload.data,
    )
    return create_response("Created", file_service.serialize(node), HTTP_STATUS_CREATED)


@router.get("", response_model=FileNodeListResponse)
def list_files(
    parent_id: str = Query(str(ROOT_PARENT_ID), alias="parentId"),
    page: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    nodes = file_service.list_nodes(db, owner_id=user_id, parent_id=parent_id, page=page)
    return create_response("OK", [file_service.serialize(node) for node in nodes])


@router.get("/{file_id}/data")
def get_file_data(
    file_id: str,
    size: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    requester_id: Optional[int] = Depends(get_optional_user_id),
) -> Response:
    """返回原始文件或缩略图字节；私有文件对非所有者一律表现为不存在。"""
    data, media_type = access_service.read_content(db, node_id=file_id, requester_id=requester_id, size=size)
    return Response(content=data, media_type=media_type)


@router.get("/{file_id}", response_model=FileNodeResponse)
def get_file(
    file_id: str,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    node = file_service.get_node(db, node_id=file_id, owner_id=user_id)
    if node is None:
        raise NotFoundError()
    return create_response("OK", file_service.serialize(node))


@router.put("/{file_id}/publish", response_model=FileNodeResponse)
def publish_file(
    file_id: str,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return _set_visibility(db, file_id=file_id, user_id=user_id, is_public=True)


@router.put("/{file_id}/unpublish", response_model=FileNodeResponse)
def unpublish_file(
    file_id: str,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return _set_visibility(db, file_id=file_id, user_id=user_id, is_public=False)


def _set_visibility(db: Session, *, file_id: str, user_id: int, is_public: bool) -> dict:
    node = file_service.set_visibility(db, node_id=file_id, owner_id=user_id, is_public=is_public)
    if node is None:
        raise NotFoundError()
    return create_response("OK", file_service.serialize(node))
