"""
订单相关的请求/响应模式
"""

from datetime import date as DateType, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.order import Order, OrderStatus
from ..models.projection import DayProjection, DishInfo
from .menu_day import MenuDayResponse


class OrderCreateRequest(BaseModel):
    """下单/改单请求"""
    cook_id: str = Field(..., min_length=1, description="厨师ID")
    meal_id: str = Field(..., min_length=1, description="所选菜品ID")
    date: DateType = Field(..., description="配送日（本地日历日）")
    time_zone: Optional[str] = Field(None, description="IANA 时区标识")


class OrderStatusUpdateRequest(BaseModel):
    """订单状态推进请求"""
    status: OrderStatus = Field(..., description="目标状态")


class OrderResponse(BaseModel):
    """订单响应"""
    order_id: str
    customer_id: str
    cook_id: str
    meal_id: str
    delivery_date: DateType
    delivery_date_utc: datetime
    price_at_order_cents: int
    status: OrderStatus
    cancel_until_utc: datetime
    time_zone: Optional[str] = None
    can_cancel: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, order: Order, can_cancel: bool = False) -> "OrderResponse":
        return cls(
            order_id=order.order_id,
            customer_id=order.customer_id,
            cook_id=order.cook_id,
            meal_id=order.meal_id,
            delivery_date=order.delivery_date,
            delivery_date_utc=order.delivery_date_utc,
            price_at_order_cents=order.price_at_order_cents,
            status=order.status,
            cancel_until_utc=order.cancel_until_utc,
            time_zone=order.time_zone,
            can_cancel=can_cancel,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class DayProjectionResponse(BaseModel):
    """顾客周视图中的一天"""
    menu_day: MenuDayResponse
    my_order: Optional[OrderResponse] = None
    selected_meal_id: Optional[str] = None
    can_cancel: bool = False
    dishes: List[DishInfo]

    @classmethod
    def from_model(cls, projection: DayProjection) -> "DayProjectionResponse":
        order = projection.my_order
        return cls(
            menu_day=MenuDayResponse.from_model(projection.day),
            my_order=OrderResponse.from_model(order, projection.can_cancel) if order else None,
            selected_meal_id=projection.selected_meal_id,
            can_cancel=projection.can_cancel,
            dishes=projection.dishes,
        )
