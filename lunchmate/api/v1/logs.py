"""
日志管理路由模块
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.security import CurrentUser, require_cook
from ...schemas.common import ApiResponse
from ...services import LogService
from ..deps import get_log_service

router = APIRouter()


@router.get("", response_model=ApiResponse[dict])
def get_logs(
    action: Optional[str] = None,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_cook),
    service: LogService = Depends(get_log_service),
):
    """当前厨师相关的操作日志；admin 可查看全部"""
    actor_id = None if user.role == "admin" else user.user_id
    return ApiResponse(data=service.list_logs(actor_id=actor_id, action=action, page=page, size=size))
