"""
菜单日路由模块
厨师读取/保存自己的每日菜单，任何登录用户可查看某厨师一周菜单
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...core.security import CurrentUser, get_current_user, require_cook
from ...schemas.common import ApiResponse
from ...schemas.menu_day import MenuDayResponse, MenuDayUpsertRequest
from ...services import MenuDayService
from ..deps import get_menu_day_service

router = APIRouter()


@router.get("/week", response_model=ApiResponse[List[MenuDayResponse]])
def get_week(
    cook_id: str = Query(..., min_length=1),
    week_start: date = Query(...),
    user: CurrentUser = Depends(get_current_user),
    service: MenuDayService = Depends(get_menu_day_service),
):
    """某厨师一周 [week_start, week_start+7) 的菜单日"""
    days = service.get_week(cook_id, week_start)
    return ApiResponse(data=[MenuDayResponse.from_model(d) for d in days])


@router.get("/{day}", response_model=ApiResponse[MenuDayResponse])
def get_or_create_menu_day(
    day: date,
    time_zone: Optional[str] = None,
    user: CurrentUser = Depends(require_cook),
    service: MenuDayService = Depends(get_menu_day_service),
):
    """读取当前厨师某天的菜单，不存在时创建草稿"""
    menu_day = service.get_or_create(user.user_id, day, time_zone)
    return ApiResponse(data=MenuDayResponse.from_model(menu_day))


@router.put("/{day}", response_model=ApiResponse[MenuDayResponse])
def upsert_menu_day(
    day: date,
    req: MenuDayUpsertRequest,
    user: CurrentUser = Depends(require_cook),
    service: MenuDayService = Depends(get_menu_day_service),
):
    """保存当前厨师某天的菜单"""
    menu_day = service.upsert(
        user.user_id, day,
        [d.model_dump() for d in req.dishes],
        req.status, req.time_zone,
        actor_id=user.user_id,
    )
    return ApiResponse(data=MenuDayResponse.from_model(menu_day), message="Menu saved")
