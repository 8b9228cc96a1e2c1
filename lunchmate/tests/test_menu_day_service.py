from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

import pytest

from lunchmate.core.exceptions import InvalidArgumentError, MenuDayStatusError
from lunchmate.models.menu_day import MenuDish, ensure_three_dishes, menu_day_key
from lunchmate.services import MenuDayService

from .conftest import COOK_ID


class TestEnsureThreeDishes:
    """菜位规范化"""

    def test_fills_missing_slots(self):
        dishes = ensure_three_dishes([MenuDish(index=2, meal_id="m2", name="Casado")])
        assert [d.index for d in dishes] == [1, 2, 3]
        assert dishes[0] == MenuDish(index=1)
        assert dishes[1].meal_id == "m2"

    def test_sorts_and_drops_out_of_range(self):
        dishes = ensure_three_dishes([
            {"index": 3, "meal_id": "m3"},
            {"index": 7, "meal_id": "mx"},
            {"index": 1, "meal_id": "m1"},
            {"index": 0, "meal_id": "m0"},
        ])
        assert [(d.index, d.meal_id) for d in dishes] == [(1, "m1"), (2, ""), (3, "m3")]

    def test_duplicate_index_keeps_first(self):
        dishes = ensure_three_dishes([
            {"index": 1, "meal_id": "first"},
            {"index": 1, "meal_id": "second"},
        ])
        assert dishes[0].meal_id == "first"

    def test_idempotent(self):
        once = ensure_three_dishes([{"index": 2, "meal_id": "m2", "notes": "spicy"}])
        assert ensure_three_dishes(once) == once

    def test_empty_input(self):
        assert ensure_three_dishes(None) == [MenuDish(index=i) for i in (1, 2, 3)]

    def test_key_is_deterministic(self):
        key = menu_day_key("c1", date(2025, 6, 10))
        assert key == menu_day_key("c1", date(2025, 6, 10))
        assert key != menu_day_key("c1", date(2025, 6, 11))
        assert 0 <= key < 2 ** 63


class TestMenuDayService:
    """菜单日服务"""

    def test_get_or_create_creates_empty_draft(self, menu_days):
        day = menu_days.get_or_create(COOK_ID, "2025-06-10")

        assert day.cook_id == COOK_ID
        assert day.date == date(2025, 6, 10)
        assert day.status == "draft"
        assert [d.index for d in day.dishes] == [1, 2, 3]
        assert all(d.meal_id == "" for d in day.dishes)
        assert day.published_at is None

    def test_get_or_create_never_duplicates(self, menu_days, test_db):
        first = menu_days.get_or_create(COOK_ID, "2025-06-10")
        second = menu_days.get_or_create(COOK_ID, datetime(2025, 6, 10, 22, 15))

        assert first.menu_day_id == second.menu_day_id
        count = test_db.execute_one("SELECT COUNT(*) FROM menu_days")[0]
        assert count == 1

    def test_get_or_create_keeps_existing_content(self, menu_days, published_day):
        day = menu_days.get_or_create(COOK_ID, "2025-06-10")
        assert day.status == "published"
        assert day.meal_ids == ["m1", "m2"]

    def test_get_missing_returns_none(self, menu_days):
        assert menu_days.get(COOK_ID, "2025-06-10") is None

    def test_upsert_publishes(self, menu_days, clock):
        day = menu_days.upsert(COOK_ID, "2025-06-10", [
            {"index": 1, "meal_id": "m1"},
            {"index": 2, "meal_id": "m2"},
        ], "published")

        assert day.status == "published"
        assert [d.meal_id for d in day.dishes] == ["m1", "m2", ""]
        assert day.published_at == clock.now
        assert day.closed_at is None

    def test_upsert_updates_same_record(self, menu_days, published_day, test_db):
        updated = menu_days.upsert(COOK_ID, "2025-06-10", [
            {"index": 3, "meal_id": "m3", "name": "Olla de carne"},
        ], "published")

        assert updated.menu_day_id == published_day.menu_day_id
        assert updated.meal_ids == ["m3"]
        assert test_db.execute_one("SELECT COUNT(*) FROM menu_days")[0] == 1

    def test_published_at_kept_on_republish(self, menu_days, published_day, clock):
        first_published = published_day.published_at
        clock.set("2025-06-09T18:00:00")

        again = menu_days.upsert(COOK_ID, "2025-06-10", published_day.dishes, "published")
        assert again.published_at == first_published

    def test_close_sets_closed_at(self, menu_days, published_day, clock):
        clock.set("2025-06-10T20:00:00")
        closed = menu_days.upsert(COOK_ID, "2025-06-10", published_day.dishes, "closed")

        assert closed.status == "closed"
        assert closed.closed_at == datetime(2025, 6, 10, 20, tzinfo=timezone.utc)
        assert closed.published_at == published_day.published_at

    def test_draft_to_closed_without_publish(self, menu_days):
        menu_days.get_or_create(COOK_ID, "2025-06-10")
        closed = menu_days.upsert(COOK_ID, "2025-06-10", [], "closed")

        assert closed.status == "closed"
        assert closed.published_at is None
        assert closed.closed_at is not None

    @pytest.mark.parametrize("start,target", [
        ("published", "draft"),
        ("closed", "published"),
        ("closed", "draft"),
    ])
    def test_invalid_transitions_rejected(self, menu_days, start, target):
        if start == "closed":
            menu_days.upsert(COOK_ID, "2025-06-10", [], "published")
        menu_days.upsert(COOK_ID, "2025-06-10", [], start)

        with pytest.raises(MenuDayStatusError):
            menu_days.upsert(COOK_ID, "2025-06-10", [], target)

    def test_time_zone_kept_when_omitted(self, menu_days):
        menu_days.upsert(COOK_ID, "2025-06-10", [], "draft", time_zone="America/Costa_Rica")
        day = menu_days.upsert(COOK_ID, "2025-06-10", [{"index": 1, "meal_id": "m1"}], "draft")
        assert day.time_zone == "America/Costa_Rica"

    def test_empty_cook_rejected(self, menu_days):
        with pytest.raises(InvalidArgumentError):
            menu_days.upsert("  ", "2025-06-10", [], "draft")
        with pytest.raises(InvalidArgumentError):
            menu_days.get_or_create("", "2025-06-10")

    def test_unknown_status_rejected(self, menu_days):
        with pytest.raises(InvalidArgumentError):
            menu_days.upsert(COOK_ID, "2025-06-10", [], "archived")

    def test_upsert_writes_operation_log(self, menu_days, published_day, test_db):
        row = test_db.execute_one(
            "SELECT actor_id, action FROM logs WHERE action='menu_day_upsert'"
        )
        assert row == (COOK_ID, "menu_day_upsert")

    def test_get_week_is_half_open_and_sorted(self, menu_days):
        for day in ("2025-06-16", "2025-06-09", "2025-06-12", "2025-06-08"):
            menu_days.get_or_create(COOK_ID, day)
        menu_days.get_or_create("c2", "2025-06-10")

        week = menu_days.get_week(COOK_ID, "2025-06-09")
        assert [d.date for d in week] == [date(2025, 6, 9), date(2025, 6, 12)]

    def test_get_range_is_inclusive(self, menu_days):
        for day in ("2025-06-09", "2025-06-12"):
            menu_days.get_or_create(COOK_ID, day)

        days = menu_days.get_range(COOK_ID, "2025-06-09", "2025-06-12")
        assert len(days) == 2


class TestMenuDayConcurrency:
    """并发首次写入同一逻辑键"""

    def test_duplicate_insert_falls_back_to_update(self, menu_days, test_db, monkeypatch, caplog):
        first = menu_days.upsert(COOK_ID, "2025-06-10", [{"index": 1, "meal_id": "m1"}], "published")

        # 第一次读取看不到已有记录，模拟另一个写入者抢先插入
        original = MenuDayService._select_row
        misses = []

        def stale_select(self, conn, cook_id, d):
            if not misses:
                misses.append(d)
                return None
            return original(self, conn, cook_id, d)

        monkeypatch.setattr(MenuDayService, "_select_row", stale_select)

        with caplog.at_level("INFO", logger="lunchmate.services.menu_day_service"):
            updated = menu_days.upsert(COOK_ID, "2025-06-10", [{"index": 2, "meal_id": "m2"}], "published")

        assert misses == [date(2025, 6, 10)]
        assert "retrying as update" in caplog.text
        assert updated.menu_day_id == first.menu_day_id
        assert updated.meal_ids == ["m2"]
        assert updated.published_at == first.published_at
        assert test_db.execute_one("SELECT COUNT(*) FROM menu_days")[0] == 1
        assert test_db.execute_one(
            "SELECT COUNT(*) FROM logs WHERE action='menu_day_upsert'"
        )[0] == 2

    def test_parallel_first_writers_share_one_record(self, menu_days, test_db):
        def write(i):
            if i % 2:
                return menu_days.get_or_create(COOK_ID, "2025-06-10")
            return menu_days.upsert(COOK_ID, "2025-06-10", [{"index": 1, "meal_id": f"m{i}"}], "draft")

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(write, range(16)))

        assert len({r.menu_day_id for r in results}) == 1
        assert test_db.execute_one("SELECT COUNT(*) FROM menu_days")[0] == 1


class TestMenuDayInputValidation:

    def test_malformed_date_is_invalid_argument(self, menu_days):
        with pytest.raises(InvalidArgumentError) as exc_info:
            menu_days.upsert(COOK_ID, "2025-13-40", [], "draft")
        assert exc_info.value.details == {"field": "date"}

        with pytest.raises(InvalidArgumentError):
            menu_days.get_or_create(COOK_ID, "tomorrow")

        with pytest.raises(InvalidArgumentError) as exc_info:
            menu_days.get_week(COOK_ID, 20250609)
        assert exc_info.value.details == {"field": "week_start"}

    def test_log_uses_service_clock(self, menu_days, published_day, test_db, clock):
        created_at = test_db.execute_one(
            "SELECT created_at FROM logs WHERE action='menu_day_upsert'"
        )[0]
        assert created_at == clock.now.replace(tzinfo=None)
        assert published_day.updated_at == clock.now
