"""
菜单日相关的请求/响应模式
"""

from datetime import date as DateType, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.menu_day import MenuDay, MenuDayStatus


class MenuDishPayload(BaseModel):
    """菜位"""
    index: int = Field(..., description="菜位序号 1..3")
    meal_id: str = Field("", description="目录菜品ID，可为空")
    name: str = Field("", max_length=200, description="菜名")
    notes: str = Field("", max_length=1000, description="备注")


class MenuDayUpsertRequest(BaseModel):
    """菜单日保存请求"""
    dishes: List[MenuDishPayload] = Field(default_factory=list, description="菜位列表")
    status: MenuDayStatus = Field(MenuDayStatus.DRAFT, description="目标状态")
    time_zone: Optional[str] = Field(None, description="IANA 时区标识")


class MenuDayResponse(BaseModel):
    """菜单日响应"""
    menu_day_id: int
    cook_id: str
    date: DateType
    status: MenuDayStatus
    time_zone: Optional[str] = None
    dishes: List[MenuDishPayload]
    published_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    confirmations_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, day: MenuDay) -> "MenuDayResponse":
        return cls(
            menu_day_id=day.menu_day_id,
            cook_id=day.cook_id,
            date=day.date,
            status=day.status,
            time_zone=day.time_zone,
            dishes=[MenuDishPayload(**d.model_dump()) for d in day.dishes],
            published_at=day.published_at,
            closed_at=day.closed_at,
            confirmations_count=day.confirmations_count,
            created_at=day.created_at,
            updated_at=day.updated_at,
        )
