"""
菜单日相关数据模型
"""

import hashlib
from datetime import date, datetime
from datetime import date as DateType
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .base import BaseEntity, TimestampMixin

DISH_SLOTS = (1, 2, 3)


class MenuDayStatus(str, Enum):
    """菜单日状态枚举"""
    DRAFT = "draft"            # 草稿
    PUBLISHED = "published"    # 已发布
    CLOSED = "closed"          # 已关闭


# 允许的状态流转（同状态保存总是允许）
MENU_DAY_TRANSITIONS: Dict[str, List[str]] = {
    MenuDayStatus.DRAFT.value: [MenuDayStatus.PUBLISHED.value, MenuDayStatus.CLOSED.value],
    MenuDayStatus.PUBLISHED.value: [MenuDayStatus.CLOSED.value],
    MenuDayStatus.CLOSED.value: [],
}


class MenuDish(BaseModel):
    """菜单中的一个菜位"""
    index: int = Field(..., description="菜位序号 1..3")
    meal_id: str = Field("", description="关联的目录菜品ID，可为空")
    name: str = Field("", max_length=200, description="菜名")
    notes: str = Field("", max_length=1000, description="备注")

    model_config = {"frozen": True}


def ensure_three_dishes(dishes: Optional[Iterable[MenuDish]]) -> List[MenuDish]:
    """
    规范化菜位：保证恰好三个菜位，序号 1..3 升序

    缺失的菜位补空，序号重复时保留第一个，超出范围的菜位丢弃。
    幂等：对结果再次调用得到相同列表。
    """
    by_index: Dict[int, MenuDish] = {}
    for dish in dishes or []:
        if isinstance(dish, dict):
            dish = MenuDish(**dish)
        if dish.index in DISH_SLOTS and dish.index not in by_index:
            by_index[dish.index] = dish

    return [by_index.get(i) or MenuDish(index=i) for i in DISH_SLOTS]


def menu_day_key(cook_id: str, day: date) -> int:
    """由 (cook_id, date) 派生的确定性 63 位整数主键"""
    digest = hashlib.sha256(f"{cook_id}|{day.isoformat()}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") >> 1


class MenuDay(BaseEntity, TimestampMixin):
    """菜单日完整模型"""
    menu_day_id: int = Field(..., description="确定性主键")
    cook_id: str = Field(..., description="厨师ID")
    date: DateType = Field(..., description="本地日历日")
    status: MenuDayStatus = Field(MenuDayStatus.DRAFT, description="状态")
    time_zone: Optional[str] = Field(None, description="时区标识")
    dishes: List[MenuDish] = Field(default_factory=list, description="三个菜位")
    published_at: Optional[datetime] = Field(None, description="首次发布时间")
    closed_at: Optional[datetime] = Field(None, description="关闭时间")
    confirmations_count: int = Field(0, description="确认数")

    @property
    def meal_ids(self) -> List[str]:
        """已绑定菜品的ID（按菜位顺序）"""
        return [d.meal_id for d in self.dishes if d.meal_id and d.meal_id.strip()]

    def find_dish(self, meal_id: str) -> Optional[MenuDish]:
        """按菜品ID查找菜位"""
        if not meal_id:
            return None
        return next((d for d in self.dishes if d.meal_id == meal_id), None)
