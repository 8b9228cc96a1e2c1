"""
订单相关数据模型
"""

from datetime import date, datetime
from datetime import date as DateType
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .base import BaseEntity, TimestampMixin


class OrderStatus(str, Enum):
    """订单状态枚举"""
    PENDING = "pending"         # 待制作
    READY = "ready"             # 已备好
    DELIVERED = "delivered"     # 已送达
    CANCELLED = "cancelled"     # 已取消


ORDER_STATUS_TRANSITIONS: Dict[str, List[str]] = {
    OrderStatus.PENDING.value: [OrderStatus.READY.value, OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value],
    OrderStatus.READY.value: [OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value],
    OrderStatus.DELIVERED.value: [],
    OrderStatus.CANCELLED.value: [],
}


class Order(BaseEntity, TimestampMixin):
    """订单完整模型"""
    order_id: str = Field(..., description="订单ID")
    customer_id: str = Field(..., description="顾客ID")
    cook_id: str = Field(..., description="厨师ID")
    meal_id: str = Field(..., description="菜品ID")
    delivery_date_utc: datetime = Field(..., description="配送日键（当日 00:00 UTC）")
    price_at_order_cents: int = Field(..., description="下单时冻结的价格（分）")
    status: OrderStatus = Field(OrderStatus.PENDING, description="订单状态")
    cancel_until_utc: datetime = Field(..., description="截单时刻（UTC）")
    time_zone: Optional[str] = Field(None, description="下单时区")

    @property
    def price_at_order(self) -> float:
        """下单价格（元）"""
        return self.price_at_order_cents / 100

    @property
    def delivery_date(self) -> date:
        """配送日（日历日）"""
        return self.delivery_date_utc.date()


class OrderRow(BaseModel):
    """厨师订单列表行（带菜名和顾客名）"""
    order_id: str
    delivery_date_utc: datetime
    customer_id: str
    customer_name: str = ""
    meal_id: str
    meal_name: str = ""
    status: OrderStatus
    created_at: Optional[datetime] = None

    model_config = {"use_enum_values": True}


class OrderGroupRow(BaseModel):
    """按日期聚合的某菜品订单统计"""
    date: DateType
    meal_id: str
    meal_name: str = ""
    total: int = 0
    cancelled: int = 0
    in_process: int = 0
    ready: int = 0
    delivered: int = 0
