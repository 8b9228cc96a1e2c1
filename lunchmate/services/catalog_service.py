"""
外部协作方的只读视图：菜品目录、评分聚合、用户目录

这些数据由其他系统维护，本服务只读取，不参与核心不变量。
"""

from typing import Dict, Iterable, List, Optional

from ..core.database import DatabaseManager, db_manager
from ..models.catalog import MealInfo, MealRating

_MEAL_COLUMNS = "meal_id, name, price_cents, description, ingredients, image_url, cook_name"


def _row_to_meal(row) -> MealInfo:
    return MealInfo(
        meal_id=row[0],
        name=row[1],
        price_cents=row[2],
        description=row[3],
        ingredients=row[4],
        image_url=row[5],
        cook_name=row[6],
    )


def _placeholders(values: List) -> str:
    return ",".join(["?"] * len(values))


class MealCatalog:
    """菜品目录与评分"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def get_meal(self, meal_id: str) -> Optional[MealInfo]:
        """按ID读取菜品，不存在时返回 None"""
        if not meal_id:
            return None
        row = self.db.execute_one(
            f"SELECT {_MEAL_COLUMNS} FROM meals WHERE meal_id=?",
            [meal_id]
        )
        return _row_to_meal(row) if row else None

    def get_meals(self, meal_ids: Iterable[str]) -> Dict[str, MealInfo]:
        """批量读取菜品"""
        ids = sorted({m for m in meal_ids if m})
        if not ids:
            return {}
        rows = self.db.execute_query(
            f"SELECT {_MEAL_COLUMNS} FROM meals WHERE meal_id IN ({_placeholders(ids)})",
            ids
        )
        return {row[0]: _row_to_meal(row) for row in rows}

    def average_rating(self, meal_id: str) -> MealRating:
        """单个菜品的评分 (平均分, 评价数)"""
        return self.ratings_for([meal_id]).get(meal_id, MealRating())

    def ratings_for(self, meal_ids: Iterable[str]) -> Dict[str, MealRating]:
        """批量评分聚合；没有评价的菜品不出现在结果中"""
        ids = sorted({m for m in meal_ids if m})
        if not ids:
            return {}
        rows = self.db.execute_query(
            f"""
            SELECT meal_id, AVG(rating), COUNT(*)
            FROM reviews
            WHERE meal_id IN ({_placeholders(ids)})
            GROUP BY meal_id
            """,
            ids
        )
        return {row[0]: MealRating(average=float(row[1]), count=int(row[2])) for row in rows}


class UserDirectory:
    """用户目录：显示名和角色"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def get_role(self, user_id: str) -> Optional[str]:
        row = self.db.execute_one("SELECT role FROM users WHERE user_id=?", [user_id])
        return row[0] if row else None

    def is_role(self, user_id: str, role: str) -> bool:
        return self.get_role(user_id) == role

    def names_for(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """批量读取显示名；缺名字的用户回退为 "Customer" """
        ids = sorted({u for u in user_ids if u})
        if not ids:
            return {}
        rows = self.db.execute_query(
            f"SELECT user_id, name FROM users WHERE user_id IN ({_placeholders(ids)})",
            ids
        )
        return {row[0]: (row[1] or "Customer") for row in rows}
