"""
订单管理路由模块
顾客下单/改单/取消和查询，厨师推进状态和查看订单
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...core.security import CurrentUser, require_cook, require_customer
from ...models.order import OrderGroupRow, OrderRow
from ...schemas.common import ApiResponse
from ...schemas.order import OrderCreateRequest, OrderResponse, OrderStatusUpdateRequest
from ...services import OrderService
from ..deps import get_order_service

router = APIRouter()


@router.post("", response_model=ApiResponse[OrderResponse])
def create_or_update_order(
    req: OrderCreateRequest,
    user: CurrentUser = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """为某天下单；已有订单时原地修改"""
    order = service.create_or_update(user.user_id, req.cook_id, req.meal_id, req.date, req.time_zone)
    return ApiResponse(data=OrderResponse.from_model(order, service.can_cancel(order)),
                       message="Order saved")


@router.delete("", response_model=ApiResponse[OrderResponse])
def cancel_order(
    cook_id: str = Query(..., min_length=1),
    day: date = Query(..., alias="date"),
    user: CurrentUser = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """取消某天的订单"""
    order = service.cancel(user.user_id, cook_id, day)
    return ApiResponse(data=OrderResponse.from_model(order, service.can_cancel(order)),
                       message="Order cancelled")


@router.get("/mine", response_model=ApiResponse[List[OrderResponse]])
def get_my_orders(
    from_day: date = Query(..., alias="from"),
    to_day: date = Query(..., alias="to"),
    cook_id: Optional[str] = None,
    user: CurrentUser = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """当前顾客在 [from, to) 内的订单"""
    orders = service.get_my_orders_range(user.user_id, from_day, to_day, cook_id=cook_id)
    return ApiResponse(data=[OrderResponse.from_model(o, service.can_cancel(o)) for o in orders])


@router.get("/history", response_model=ApiResponse[List[OrderResponse]])
def get_order_history(
    user: CurrentUser = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """当前顾客已送达/已取消的订单"""
    orders = service.get_customer_history(user.user_id)
    return ApiResponse(data=[OrderResponse.from_model(o) for o in orders])


@router.patch("/{order_id}/status", response_model=ApiResponse[OrderResponse])
def update_order_status(
    order_id: str,
    req: OrderStatusUpdateRequest,
    user: CurrentUser = Depends(require_cook),
    service: OrderService = Depends(get_order_service),
):
    """厨师推进订单状态"""
    cook_id = None if user.role == "admin" else user.user_id
    order = service.update_status(order_id, req.status, cook_id=cook_id, actor_id=user.user_id)
    return ApiResponse(data=OrderResponse.from_model(order, service.can_cancel(order)))


@router.get("/cook", response_model=ApiResponse[List[OrderRow]])
def get_cook_orders(
    from_day: date = Query(..., alias="from"),
    to_day: date = Query(..., alias="to"),
    filter_date: Optional[date] = Query(None, alias="date"),
    meal_id: Optional[str] = None,
    user: CurrentUser = Depends(require_cook),
    service: OrderService = Depends(get_order_service),
):
    """当前厨师在 [from, to) 内的订单明细"""
    rows = service.get_cook_orders_expanded(user.user_id, from_day, to_day,
                                            filter_date=filter_date, filter_meal_id=meal_id)
    return ApiResponse(data=rows)


@router.get("/cook/grouped", response_model=ApiResponse[List[OrderGroupRow]])
def get_cook_orders_grouped(
    meal_id: str = Query(..., min_length=1),
    from_day: date = Query(..., alias="from"),
    to_day: date = Query(..., alias="to"),
    user: CurrentUser = Depends(require_cook),
    service: OrderService = Depends(get_order_service),
):
    """当前厨师某菜品按配送日汇总"""
    rows = service.get_cook_orders_grouped(user.user_id, meal_id, from_day, to_day)
    return ApiResponse(data=rows)
