"""
路由依赖：按请求构造服务实例

测试通过 app.dependency_overrides 替换 get_db / get_clock 即可切换到内存库和固定时钟。
"""

from datetime import datetime
from typing import Callable

from fastapi import Depends

from ..core.database import DatabaseManager, db_manager
from ..core.day_keys import utc_now
from ..services import LogService, MealCatalog, MenuDayService, OrderService, UserDirectory, WeeklyProjector


def get_db() -> DatabaseManager:
    return db_manager


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_menu_day_service(db: DatabaseManager = Depends(get_db),
                         clock: Callable[[], datetime] = Depends(get_clock)) -> MenuDayService:
    return MenuDayService(db, clock=clock)


def get_order_service(db: DatabaseManager = Depends(get_db),
                      clock: Callable[[], datetime] = Depends(get_clock)) -> OrderService:
    return OrderService(db, catalog=MealCatalog(db), users=UserDirectory(db), clock=clock)


def get_weekly_projector(db: DatabaseManager = Depends(get_db),
                         clock: Callable[[], datetime] = Depends(get_clock)) -> WeeklyProjector:
    return WeeklyProjector(db, clock=clock)


def get_log_service(db: DatabaseManager = Depends(get_db)) -> LogService:
    return LogService(db)
