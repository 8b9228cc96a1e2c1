"""
顾客周视图路由
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

from ...core.security import CurrentUser, require_customer
from ...schemas.common import ApiResponse
from ...schemas.order import DayProjectionResponse
from ...services import WeeklyProjector
from ..deps import get_weekly_projector

router = APIRouter()


@router.get("", response_model=ApiResponse[List[DayProjectionResponse]])
def project_week(
    cook_id: str = Query(..., min_length=1),
    week_start: date = Query(...),
    user: CurrentUser = Depends(require_customer),
    projector: WeeklyProjector = Depends(get_weekly_projector),
):
    """某厨师一周菜单，附带当前顾客的选择和是否可取消"""
    days = projector.project_week(user.user_id, cook_id, week_start)
    return ApiResponse(data=[DayProjectionResponse.from_model(d) for d in days])
