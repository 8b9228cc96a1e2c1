"""
菜品目录与评分（外部数据的只读视图）
"""

from typing import Optional

from pydantic import BaseModel, Field


class MealInfo(BaseModel):
    """目录中的菜品"""
    meal_id: str = Field(..., description="菜品ID")
    name: str = Field(..., description="菜名")
    price_cents: int = Field(..., description="价格（分）")
    description: Optional[str] = None
    ingredients: Optional[str] = None
    image_url: Optional[str] = None
    cook_name: Optional[str] = None


class MealRating(BaseModel):
    """评分聚合，没有评价时为 (0, 0)"""
    average: float = 0.0
    count: int = 0
