"""
Business logic services.
Contains service layer implementations for menu days, orders and the weekly view.
"""

from .catalog_service import MealCatalog, UserDirectory
from .log_service import LogService
from .menu_day_service import MenuDayService
from .order_service import OrderService
from .weekly_projector import WeeklyProjector

__all__ = [
    "LogService",
    "MealCatalog",
    "MenuDayService",
    "OrderService",
    "UserDirectory",
    "WeeklyProjector",
]
