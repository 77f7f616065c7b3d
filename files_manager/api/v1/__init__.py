"""API v1 汇总路由：统一挂载所有版本化的子路由。"""

from fastapi import APIRouter

from files_manager.api.v1.endpoints import app_status, auth, files, users

api_router = APIRouter()
api_router.include_router(app_status.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(files.router)
