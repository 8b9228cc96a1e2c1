"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import logs, menu_days, orders, week

api_router = APIRouter()

api_router.include_router(menu_days.router, prefix="/menu-days", tags=["菜单日"])
api_router.include_router(orders.router, prefix="/orders", tags=["订单"])
api_router.include_router(week.router, prefix="/week", tags=["周视图"])
api_router.include_router(logs.router, prefix="/logs", tags=["日志"])
