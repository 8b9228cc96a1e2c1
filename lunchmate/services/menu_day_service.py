"""
菜单日服务
处理厨师每日菜单的读取、懒创建和按逻辑键 upsert

业务规则：
- 每个 (厨师, 日期) 只有一条记录，由表级 UNIQUE 约束保证
- 始终恰好三个菜位，按序号 1..3 排列
- 状态只允许 草稿→发布→关闭 或 草稿→关闭
- 厨师编辑菜单不受截单时间限制
"""

import json
import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Union

from ..core.database import DatabaseManager, db_manager
from ..core.day_keys import (
    DateLike,
    as_utc,
    parse_local_date,
    to_db_timestamp,
    utc_now,
    week_range,
)
from ..core.exceptions import DuplicateKeyError, InvalidArgumentError, MenuDayStatusError
from ..models.menu_day import (
    MENU_DAY_TRANSITIONS,
    MenuDay,
    MenuDayStatus,
    MenuDish,
    ensure_three_dishes,
    menu_day_key,
)
from .log_service import record_log

logger = logging.getLogger(__name__)

MENU_DAY_COLUMNS = (
    "menu_day_id, cook_id, date, status, time_zone, dishes_json, "
    "published_at, closed_at, confirmations_count, created_at, updated_at"
)


def _dishes_to_json(dishes: List[MenuDish]) -> str:
    return json.dumps([d.model_dump() for d in dishes], ensure_ascii=False)


def row_to_menu_day(row) -> MenuDay:
    raw = row[5]
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt dishes_json on menu day %s, resetting slots", row[0])
            raw = []
    return MenuDay(
        menu_day_id=row[0],
        cook_id=row[1],
        date=row[2],
        status=row[3],
        time_zone=row[4],
        dishes=ensure_three_dishes(raw or []),
        published_at=as_utc(row[6]),
        closed_at=as_utc(row[7]),
        confirmations_count=row[8] or 0,
        created_at=as_utc(row[9]),
        updated_at=as_utc(row[10]),
    )


def _require_cook_id(cook_id: Optional[str]) -> str:
    if not cook_id or not str(cook_id).strip():
        raise InvalidArgumentError("cookId is required.", details={"field": "cook_id"})
    return str(cook_id).strip()


def _parse_status(status: Union[str, MenuDayStatus]) -> MenuDayStatus:
    try:
        return MenuDayStatus(status)
    except ValueError:
        raise InvalidArgumentError(f"Invalid menu day status: {status}", details={"field": "status"})


class MenuDayService:
    """菜单日服务"""

    def __init__(self, db: DatabaseManager = None, clock: Callable[[], datetime] = None):
        self.db = db or db_manager
        self.clock = clock or utc_now

    def get(self, cook_id: str, day: DateLike) -> Optional[MenuDay]:
        """按逻辑键读取菜单日，不存在时返回 None"""
        row = self.db.execute_one(
            f"SELECT {MENU_DAY_COLUMNS} FROM menu_days WHERE cook_id=? AND date=?",
            [cook_id, parse_local_date(day)]
        )
        return row_to_menu_day(row) if row else None

    def get_or_create(self, cook_id: str, day: DateLike, time_zone: Optional[str] = None) -> MenuDay:
        """
        读取菜单日，不存在则创建三个空菜位的草稿

        并发首次访问同一 (厨师, 日期) 时依赖唯一约束：INSERT OR IGNORE 后重新读取，
        不会产生重复记录。
        """
        cook_id = _require_cook_id(cook_id)
        d = parse_local_date(day)
        now = to_db_timestamp(self.clock())

        with self.db.transaction() as conn:
            conn.execute(
                f"""
                INSERT OR IGNORE INTO menu_days ({MENU_DAY_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, NULL, NULL, 0, ?, ?)
                """,
                [menu_day_key(cook_id, d), cook_id, d, MenuDayStatus.DRAFT.value,
                 time_zone, _dishes_to_json(ensure_three_dishes([])), now, now]
            )
            row = self._select_row(conn, cook_id, d)

        return row_to_menu_day(row)

    def upsert(self, cook_id: str, day: DateLike, dishes: Optional[Iterable[MenuDish]],
               status: Union[str, MenuDayStatus], time_zone: Optional[str] = None,
               actor_id: Optional[str] = None) -> MenuDay:
        """
        按 (厨师, 日期) 新建或更新菜单日

        Args:
            cook_id: 厨师ID（必填）
            day: 本地日历日
            dishes: 菜位列表，不足补空、多余截断
            status: 目标状态
            time_zone: 时区标识
            actor_id: 操作人，默认即厨师本人

        Raises:
            InvalidArgumentError: cook_id 为空或状态值非法时
            MenuDayStatusError: 状态流转非法时
        """
        cook_id = _require_cook_id(cook_id)
        d = parse_local_date(day)
        normalized = ensure_three_dishes(dishes)
        target = _parse_status(status)

        try:
            return self._upsert_once(cook_id, d, normalized, target, time_zone, actor_id)
        except DuplicateKeyError:
            # 并发插入同一逻辑键：对方已建好记录，重新执行即走更新分支
            logger.info("Concurrent insert on menu day (%s, %s), retrying as update", cook_id, d)
            return self._upsert_once(cook_id, d, normalized, target, time_zone, actor_id)

    def get_week(self, cook_id: str, week_start: DateLike) -> List[MenuDay]:
        """某厨师一周 [start, start+7) 的菜单日，按日期升序"""
        start, end = week_range(parse_local_date(week_start, "week_start"))
        rows = self.db.execute_query(
            f"""
            SELECT {MENU_DAY_COLUMNS} FROM menu_days
            WHERE cook_id=? AND date >= ? AND date < ?
            ORDER BY date
            """,
            [cook_id, start, end]
        )
        return [row_to_menu_day(row) for row in rows]

    def get_range(self, cook_id: str, start: DateLike, end: DateLike) -> List[MenuDay]:
        """某厨师闭区间 [start, end] 内的菜单日"""
        rows = self.db.execute_query(
            f"""
            SELECT {MENU_DAY_COLUMNS} FROM menu_days
            WHERE cook_id=? AND date >= ? AND date <= ?
            ORDER BY date
            """,
            [cook_id, parse_local_date(start, "start"), parse_local_date(end, "end")]
        )
        return [row_to_menu_day(row) for row in rows]

    def _upsert_once(self, cook_id: str, d: date, dishes: List[MenuDish], target: MenuDayStatus,
                     time_zone: Optional[str], actor_id: Optional[str]) -> MenuDay:
        now = as_utc(self.clock())
        with self.db.transaction() as conn:
            row = self._select_row(conn, cook_id, d)

            if row is None:
                self._insert(conn, cook_id, d, dishes, target, time_zone, now)
                previous_status = None
            else:
                existing = row_to_menu_day(row)
                self._validate_status_transition(existing.status, target.value)
                self._update(conn, existing, dishes, target, time_zone, now)
                previous_status = existing.status

            record_log(conn, "menu_day_upsert", actor_id or cook_id, {
                "cook_id": cook_id,
                "date": d.isoformat(),
                "from_status": previous_status,
                "to_status": target.value,
                "meal_ids": [x.meal_id for x in dishes if x.meal_id],
            }, now)

            row = self._select_row(conn, cook_id, d)

        return row_to_menu_day(row)

    def _select_row(self, conn, cook_id: str, d: date):
        """事务内按逻辑键读取原始行"""
        return conn.execute(
            f"SELECT {MENU_DAY_COLUMNS} FROM menu_days WHERE cook_id=? AND date=?",
            [cook_id, d]
        ).fetchone()

    def _insert(self, conn, cook_id: str, d: date, dishes: List[MenuDish], target: MenuDayStatus,
                time_zone: Optional[str], now: datetime):
        """插入新记录；与并发创建者冲突时由唯一约束抛出 DuplicateKeyError"""
        published_at = now if target == MenuDayStatus.PUBLISHED else None
        conn.execute(
            f"""
            INSERT INTO menu_days ({MENU_DAY_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, NULL, 0, ?, ?)
            """,
            [menu_day_key(cook_id, d), cook_id, d, target.value, time_zone,
             _dishes_to_json(dishes), to_db_timestamp(published_at),
             to_db_timestamp(now), to_db_timestamp(now)]
        )

    def _update(self, conn, existing: MenuDay, dishes: List[MenuDish], target: MenuDayStatus,
                time_zone: Optional[str], now: datetime):
        """更新菜位/状态/时区，并重新计算发布与关闭时间"""
        published_at = existing.published_at
        if target == MenuDayStatus.PUBLISHED and existing.status != MenuDayStatus.PUBLISHED.value:
            published_at = existing.published_at or now

        if target == MenuDayStatus.CLOSED:
            closed_at = existing.closed_at if existing.status == MenuDayStatus.CLOSED.value else now
        else:
            closed_at = None

        conn.execute(
            """
            UPDATE menu_days
            SET dishes_json = ?, status = ?, time_zone = ?,
                published_at = ?, closed_at = ?, updated_at = ?
            WHERE menu_day_id = ?
            """,
            [_dishes_to_json(dishes), target.value,
             time_zone if time_zone is not None else existing.time_zone,
             to_db_timestamp(published_at), to_db_timestamp(closed_at),
             to_db_timestamp(now), existing.menu_day_id]
        )

    def _validate_status_transition(self, current_status: str, new_status: str):
        """验证状态转换是否合法（同状态保存允许）"""
        if current_status == new_status:
            return
        if new_status not in MENU_DAY_TRANSITIONS.get(current_status, []):
            raise MenuDayStatusError(
                f"Cannot change menu day from {current_status} to {new_status}.",
                details={"from": current_status, "to": new_status}
            )

