"""
测试配置文件
提供测试所需的fixtures和配置
"""

import os

os.environ.setdefault("LUNCHMATE_DATABASE_URL", ":memory:")
os.environ.setdefault("LUNCHMATE_JWT_SECRET_KEY", "test-secret-key")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from lunchmate.api.deps import get_clock, get_db
from lunchmate.app import create_app
from lunchmate.config import get_settings
from lunchmate.core.database import DatabaseManager
from lunchmate.core.security import security_manager
from lunchmate.services import MealCatalog, MenuDayService, OrderService, UserDirectory, WeeklyProjector

COOK_ID = "c1"
CUSTOMER_ID = "u1"


class FixedClock:
    """可手动拨动的时钟"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: str):
        self.now = datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """默认时间 2025-06-09 12:00 UTC，早于 2025-06-10 的截单时刻"""
    return FixedClock(datetime(2025, 6, 9, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_db():
    """测试数据库（每个测试独立的内存库）"""
    db = DatabaseManager(":memory:")
    db.init_database()
    yield db
    db.close()


@pytest.fixture
def seed(test_db):
    """写入外部维护的目录数据：用户、菜品、评价"""

    class Seeder:
        def user(self, user_id: str, role: str = "customer", name: str = None):
            test_db.execute_query(
                "INSERT INTO users(user_id, name, role) VALUES (?,?,?)",
                [user_id, name, role]
            )

        def meal(self, meal_id: str, name: str, price_cents: int, cook_id: str = COOK_ID, **extra):
            test_db.execute_query(
                """
                INSERT INTO meals(meal_id, cook_id, cook_name, name, description, ingredients,
                                  price_cents, image_url)
                VALUES (?,?,?,?,?,?,?,?)
                """,
                [meal_id, cook_id, extra.get("cook_name", "Chef Ana"), name,
                 extra.get("description"), extra.get("ingredients"), price_cents,
                 extra.get("image_url")]
            )

        def review(self, meal_id: str, user_id: str, rating: int):
            test_db.execute_query(
                "INSERT INTO reviews(meal_id, user_id, rating) VALUES (?,?,?)",
                [meal_id, user_id, rating]
            )

        def set_price(self, meal_id: str, price_cents: int):
            test_db.execute_query(
                "UPDATE meals SET price_cents=? WHERE meal_id=?", [price_cents, meal_id]
            )

    return Seeder()


@pytest.fixture
def catalog(test_db, seed):
    """c1 的三道菜 m1/m2/m3 和两位用户"""
    seed.user(COOK_ID, "cook", "Ana")
    seed.user(CUSTOMER_ID, "customer", "Luis")
    seed.meal("m1", "Gallo pinto", 2500)
    seed.meal("m2", "Casado", 3500)
    seed.meal("m3", "Olla de carne", 4000)
    return MealCatalog(test_db)


@pytest.fixture
def menu_days(test_db, clock):
    return MenuDayService(test_db, clock=clock)


@pytest.fixture
def orders(test_db, catalog, clock):
    return OrderService(test_db, catalog=catalog, users=UserDirectory(test_db), clock=clock)


@pytest.fixture
def projector(test_db, catalog, clock):
    return WeeklyProjector(test_db, catalog=catalog, clock=clock)


@pytest.fixture
def published_day(menu_days, catalog):
    """c1 在 2025-06-10 发布的菜单：m1、m2 两道菜，第三位空"""
    return menu_days.upsert(COOK_ID, "2025-06-10", [
        {"index": 1, "meal_id": "m1", "name": "Gallo pinto"},
        {"index": 2, "meal_id": "m2", "name": "Casado"},
    ], "published", time_zone="UTC")


@pytest.fixture
def app_instance(test_db, clock):
    """测试应用，数据库与时钟通过依赖覆盖替换"""
    app = create_app(get_settings("testing"))
    app.dependency_overrides[get_db] = lambda: test_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_instance):
    """测试客户端"""
    with TestClient(app_instance) as c:
        yield c


def make_headers(user_id: str, role: str) -> dict:
    token = security_manager.create_jwt_token(user_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cook_headers():
    return make_headers(COOK_ID, "cook")


@pytest.fixture
def customer_headers():
    return make_headers(CUSTOMER_ID, "customer")
