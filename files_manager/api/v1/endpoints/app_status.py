"""服务状态与统计接口。"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from files_manager.api.v1.schemas.users import StatsResponse, StatusResponse
from files_manager.core.dependencies import get_db
from files_manager.core.responses import create_response
from files_manager.core.session import redis_alive
from files_manager.db.init_db import db_is_alive
from files_manager.services.file_service import file_service
from files_manager.services.user_service import user_service

router = APIRouter(tags=["app"])


@router.get("/status", response_model=StatusResponse)
def get_status():
    """报告 Redis 与数据库是否就绪。"""
    return create_response("OK", {"redis": redis_alive(), "db": db_is_alive()})


@router.get("/stats", response_model=StatsResponse)
def get_stats(db: Session = Depends(get_db)):
    return create_response(
        "OK",
        {"users": user_service.count_users(db), "files": file_service.count_nodes(db)},
    )
