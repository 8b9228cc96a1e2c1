"""
顾客周视图
把厨师一周的菜单日、顾客本人的订单、菜品目录和评分拼成只读投影
"""

from datetime import datetime
from typing import Callable, Dict, List

from ..core.database import DatabaseManager, db_manager
from ..core.day_keys import DateLike, as_utc, parse_local_date, utc_key, utc_now, week_range
from ..models.catalog import MealRating
from ..models.menu_day import MenuDay
from ..models.order import Order
from ..models.projection import DayProjection, DishInfo
from .catalog_service import MealCatalog
from .menu_day_service import MenuDayService
from .order_service import OrderService, can_cancel


class WeeklyProjector:
    """顾客周视图投影，不修改任何记录"""

    def __init__(self, db: DatabaseManager = None, menu_days: MenuDayService = None,
                 orders: OrderService = None, catalog: MealCatalog = None,
                 clock: Callable[[], datetime] = None):
        self.db = db or db_manager
        self.clock = clock or utc_now
        self.catalog = catalog or MealCatalog(self.db)
        self.menu_days = menu_days or MenuDayService(self.db, clock=self.clock)
        self.orders = orders or OrderService(self.db, catalog=self.catalog, clock=self.clock)

    def project_week(self, customer_id: str, cook_id: str, week_start: DateLike) -> List[DayProjection]:
        """
        一周 [start, start+7) 内该厨师已有的菜单日，附带顾客订单和补全的菜位

        菜位按序号升序，未绑定菜品的菜位不出现在 dishes 中；
        没有评价的菜品评分为 (0, 0)。
        """
        start, end = week_range(parse_local_date(week_start, "week_start"))
        days = self.menu_days.get_week(cook_id, start)
        if not days:
            return []

        my_orders = self.orders.get_my_orders_range(customer_id, start, end, cook_id=cook_id)
        by_key: Dict[datetime, Order] = {o.delivery_date_utc: o for o in my_orders}

        meal_ids = {mid for d in days for mid in d.meal_ids}
        meals = self.catalog.get_meals(meal_ids)
        ratings = self.catalog.ratings_for(meal_ids)

        now = as_utc(self.clock())
        result = []
        for day in days:
            my_order = by_key.get(utc_key(day.date))
            result.append(DayProjection(
                day=day,
                my_order=my_order,
                dishes=self._hydrate(day, meals, ratings),
                can_cancel=my_order is not None and can_cancel(my_order, now),
            ))
        return result

    def _hydrate(self, day: MenuDay, meals, ratings) -> List[DishInfo]:
        hydrated = []
        for dish in sorted(day.dishes, key=lambda x: x.index):
            if not dish.meal_id or not dish.meal_id.strip():
                continue
            meal = meals.get(dish.meal_id)
            rating = ratings.get(dish.meal_id, MealRating())
            hydrated.append(DishInfo(
                index=dish.index,
                meal_id=dish.meal_id,
                name=meal.name if meal else dish.name,
                description=meal.description if meal else None,
                ingredients=meal.ingredients if meal else None,
                price_cents=meal.price_cents if meal else 0,
                image_url=meal.image_url if meal else None,
                notes=dish.notes,
                cook_name=meal.cook_name if meal else None,
                average_rating=rating.average,
                total_reviews=rating.count,
            ))
        return hydrated
