"""
顾客周视图投影模型（只读、去规范化）
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .menu_day import MenuDay
from .order import Order


class DishInfo(BaseModel):
    """补全了目录信息和评分的菜位"""
    index: int
    meal_id: str
    name: str = ""
    description: Optional[str] = None
    ingredients: Optional[str] = None
    price_cents: int = 0
    image_url: Optional[str] = None
    notes: Optional[str] = None
    cook_name: Optional[str] = None
    average_rating: float = 0.0
    total_reviews: int = 0


class DayProjection(BaseModel):
    """某一天的菜单和当前顾客的选择"""
    day: MenuDay
    my_order: Optional[Order] = None
    dishes: List[DishInfo] = Field(default_factory=list)
    can_cancel: bool = False

    @property
    def selected_meal_id(self) -> Optional[str]:
        return self.my_order.meal_id if self.my_order else None
