"""
订单服务模块
提供订单相关的核心业务逻辑，包括下单/改单、取消、状态推进和查询

主要功能：
- 按 (顾客, 厨师, 配送日) 逻辑键新建或原地更新订单
- 截单前取消订单（软取消，保留历史）
- 厨师推进订单状态 pending → ready → delivered
- 顾客订单区间查询、历史查询，厨师订单明细与按日汇总

业务规则：
- 每位顾客每天对每位厨师最多一单，由表级 UNIQUE 约束保证
- 价格在下单/改单时从菜品目录冻结
- 顾客侧的新建、修改、取消在截单时刻之后一律拒绝
- 厨师推进状态不受截单限制
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Union

from ..config.settings import settings
from ..core.database import DatabaseManager, db_manager
from ..core.day_keys import (
    DateLike,
    as_utc,
    cancel_until,
    parse_local_date,
    resolve_time_zone,
    to_db_timestamp,
    utc_key,
    utc_now,
)
from ..core.exceptions import (
    CutoffExpiredError,
    DuplicateKeyError,
    InvalidArgumentError,
    InvalidSelectionError,
    MealNotFoundError,
    MenuDayNotFoundError,
    OrderNotFoundError,
    OrderStatusError,
    PermissionDeniedError,
)
from ..models.order import ORDER_STATUS_TRANSITIONS, Order, OrderGroupRow, OrderRow, OrderStatus
from .catalog_service import MealCatalog, UserDirectory
from .log_service import record_log
from .menu_day_service import MENU_DAY_COLUMNS, row_to_menu_day

logger = logging.getLogger(__name__)

ORDER_COLUMNS = (
    "order_id, customer_id, cook_id, meal_id, delivery_date_utc, price_at_order_cents, "
    "status, cancel_until_utc, time_zone, created_at, updated_at"
)


def row_to_order(row) -> Order:
    return Order(
        order_id=row[0],
        customer_id=row[1],
        cook_id=row[2],
        meal_id=row[3],
        delivery_date_utc=as_utc(row[4]),
        price_at_order_cents=row[5],
        status=row[6],
        cancel_until_utc=as_utc(row[7]),
        time_zone=row[8],
        created_at=as_utc(row[9]),
        updated_at=as_utc(row[10]),
    )


def can_cancel(order: Order, now: Optional[datetime] = None) -> bool:
    """截单前（含截单时刻）顾客可以修改或取消订单"""
    now = as_utc(now) if now is not None else utc_now()
    return now <= order.cancel_until_utc


def _require(value: Optional[str], field: str) -> str:
    if not value or not str(value).strip():
        raise InvalidArgumentError(f"{field} is required.", details={"field": field})
    return str(value).strip()


def _day_param(value: DateLike, field: str = "date") -> datetime:
    """查询参数：日历日对应的无时区 UTC 日键"""
    return to_db_timestamp(utc_key(parse_local_date(value, field)))


class OrderService:
    """订单服务类，封装所有订单相关的业务逻辑"""

    def __init__(self, db: DatabaseManager = None, catalog: MealCatalog = None,
                 users: UserDirectory = None, clock: Callable[[], datetime] = None):
        self.db = db or db_manager
        self.catalog = catalog or MealCatalog(self.db)
        self.users = users or UserDirectory(self.db)
        self.clock = clock or utc_now

    def can_cancel(self, order: Order) -> bool:
        return can_cancel(order, as_utc(self.clock()))

    def create_or_update(self, customer_id: str, cook_id: str, meal_id: str,
                         day: DateLike, time_zone: Optional[str] = None) -> Order:
        """
        新建或原地更新订单

        Args:
            customer_id: 顾客ID
            cook_id: 厨师ID
            meal_id: 所选菜品ID，必须在当天菜单的菜位中
            day: 配送日（本地日历日）
            time_zone: 计算截单时刻使用的时区

        Returns:
            Order: 新建或更新后的订单快照

        Raises:
            InvalidArgumentError: 缺少必填ID时
            MenuDayNotFoundError: 当天没有该厨师的菜单时
            InvalidSelectionError: 菜品不在当天菜单中时
            MealNotFoundError: 目录中已没有该菜品时
            CutoffExpiredError: 已过截单时间时
            OrderStatusError: 订单已备好或已送达时
        """
        customer_id = _require(customer_id, "customer_id")
        cook_id = _require(cook_id, "cook_id")
        meal_id = _require(meal_id, "meal_id")
        d = parse_local_date(day)

        tz_id = time_zone or settings.default_time_zone
        _, resolved = resolve_time_zone(tz_id)
        if not resolved:
            logger.warning("Unknown time zone %r for order (%s, %s, %s), using UTC",
                           tz_id, customer_id, cook_id, d)

        try:
            return self._create_or_update_once(customer_id, cook_id, meal_id, d, tz_id)
        except DuplicateKeyError:
            # 并发首次下单：对方已插入，重新执行即走更新分支（仍做截单检查）
            logger.info("Concurrent order insert for (%s, %s, %s), retrying as update",
                        customer_id, cook_id, d)
            return self._create_or_update_once(customer_id, cook_id, meal_id, d, tz_id)

    def cancel(self, customer_id: str, cook_id: str, day: DateLike) -> Order:
        """
        取消订单（状态改为 cancelled，不删除记录）

        Raises:
            OrderNotFoundError: 订单不存在时
            CutoffExpiredError: 已过截单时间时
            OrderStatusError: 订单已送达时
        """
        customer_id = _require(customer_id, "customer_id")
        cook_id = _require(cook_id, "cook_id")
        key = utc_key(parse_local_date(day))

        with self.db.transaction() as conn:
            existing = self._get_by_key(conn, customer_id, cook_id, key)
            if existing is None:
                raise OrderNotFoundError()

            now = as_utc(self.clock())
            if not can_cancel(existing, now):
                raise CutoffExpiredError("Cutoff time has passed. You cannot cancel this order.")

            if existing.status == OrderStatus.CANCELLED.value:
                return existing

            self._validate_status_transition(existing.status, OrderStatus.CANCELLED.value)

            conn.execute(
                "UPDATE orders SET status=?, updated_at=? WHERE order_id=?",
                [OrderStatus.CANCELLED.value, to_db_timestamp(now), existing.order_id]
            )
            record_log(conn, "order_cancel", customer_id, {
                "order_id": existing.order_id,
                "cook_id": cook_id,
                "meal_id": existing.meal_id,
                "date": key.date().isoformat(),
                "price_at_order_cents": existing.price_at_order_cents,
            }, now, user_id=customer_id)

            order = self._get_by_key(conn, customer_id, cook_id, key)

        logger.info("Order %s cancelled by %s", order.order_id, customer_id)
        return order

    def update_status(self, order_id: str, new_status: Union[str, OrderStatus],
                      cook_id: Optional[str] = None, actor_id: Optional[str] = None) -> Order:
        """
        厨师推进订单状态（不受截单限制）

        Args:
            order_id: 订单ID
            new_status: 目标状态
            cook_id: 若提供，必须是该订单的厨师
            actor_id: 操作人
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise InvalidArgumentError(f"Invalid order status: {new_status}", details={"field": "status"})

        with self.db.transaction() as conn:
            row = conn.execute(
                f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id=?", [order_id]
            ).fetchone()
            if not row:
                raise OrderNotFoundError()
            existing = row_to_order(row)

            if cook_id and existing.cook_id != cook_id:
                raise PermissionDeniedError("Only the order's cook can change its status.")

            if existing.status == target.value:
                return existing
            self._validate_status_transition(existing.status, target.value)

            now = as_utc(self.clock())
            conn.execute(
                "UPDATE orders SET status=?, updated_at=? WHERE order_id=?",
                [target.value, to_db_timestamp(now), order_id]
            )
            record_log(conn, "order_status_change", actor_id or cook_id, {
                "order_id": order_id,
                "from": existing.status,
                "to": target.value,
            }, now, user_id=existing.customer_id)

            row = conn.execute(
                f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id=?", [order_id]
            ).fetchone()

        return row_to_order(row)

    def get(self, customer_id: str, cook_id: str, day: DateLike) -> Optional[Order]:
        """按逻辑键读取订单"""
        row = self.db.execute_one(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE customer_id=? AND cook_id=? AND delivery_date_utc=?",
            [customer_id, cook_id, _day_param(day)]
        )
        return row_to_order(row) if row else None

    def get_by_id(self, order_id: str) -> Optional[Order]:
        row = self.db.execute_one(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id=?", [order_id]
        )
        return row_to_order(row) if row else None

    def get_my_orders_range(self, customer_id: str, from_day: DateLike, to_day: DateLike,
                            cook_id: Optional[str] = None) -> List[Order]:
        """顾客在 [from, to) 配送日范围内的订单，可按厨师过滤"""
        query = f"""
            SELECT {ORDER_COLUMNS} FROM orders
            WHERE customer_id=? AND delivery_date_utc >= ? AND delivery_date_utc < ?
        """
        params = [customer_id, _day_param(from_day, "from"), _day_param(to_day, "to")]
        if cook_id:
            query += " AND cook_id=?"
            params.append(cook_id)
        query += " ORDER BY delivery_date_utc"

        return [row_to_order(row) for row in self.db.execute_query(query, params)]

    def get_customer_history(self, customer_id: str) -> List[Order]:
        """顾客已送达和已取消的订单，最新的在前"""
        rows = self.db.execute_query(
            f"""
            SELECT {ORDER_COLUMNS} FROM orders
            WHERE customer_id=? AND status IN (?, ?)
            ORDER BY created_at DESC
            """,
            [customer_id, OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value]
        )
        return [row_to_order(row) for row in rows]

    def get_cook_orders_expanded(self, cook_id: str, from_day: DateLike, to_day: DateLike,
                                 filter_date: Optional[DateLike] = None,
                                 filter_meal_id: Optional[str] = None) -> List[OrderRow]:
        """厨师在 [from, to) 内的订单明细（带菜名和顾客名）"""
        query = f"""
            SELECT {ORDER_COLUMNS} FROM orders
            WHERE cook_id=? AND delivery_date_utc >= ? AND delivery_date_utc < ?
        """
        params = [cook_id, _day_param(from_day, "from"), _day_param(to_day, "to")]
        if filter_date is not None:
            query += " AND delivery_date_utc=?"
            params.append(_day_param(filter_date))
        if filter_meal_id:
            query += " AND meal_id=?"
            params.append(filter_meal_id)
        query += " ORDER BY delivery_date_utc, created_at"

        orders = [row_to_order(row) for row in self.db.execute_query(query, params)]
        if not orders:
            return []

        meals = self.catalog.get_meals(o.meal_id for o in orders)
        names = self.users.names_for(o.customer_id for o in orders)

        return [
            OrderRow(
                order_id=o.order_id,
                delivery_date_utc=o.delivery_date_utc,
                customer_id=o.customer_id,
                customer_name=names.get(o.customer_id, o.customer_id),
                meal_id=o.meal_id,
                meal_name=meals[o.meal_id].name if o.meal_id in meals else o.meal_id,
                status=o.status,
                created_at=o.created_at,
            )
            for o in orders
        ]

    def get_cook_orders_grouped(self, cook_id: str, meal_id: str, from_day: DateLike,
                                to_day: DateLike) -> List[OrderGroupRow]:
        """某菜品在 [from, to) 内按配送日汇总的订单数"""
        rows = self.db.execute_query(
            """
            SELECT delivery_date_utc,
                   COUNT(*),
                   SUM(CASE WHEN status='cancelled' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN status='pending' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN status='ready' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN status='delivered' THEN 1 ELSE 0 END)
            FROM orders
            WHERE cook_id=? AND meal_id=? AND delivery_date_utc >= ? AND delivery_date_utc < ?
            GROUP BY delivery_date_utc
            ORDER BY delivery_date_utc
            """,
            [cook_id, meal_id, _day_param(from_day, "from"), _day_param(to_day, "to")]
        )
        if not rows:
            return []

        meal = self.catalog.get_meal(meal_id)
        meal_name = meal.name if meal else "(meal)"

        return [
            OrderGroupRow(
                date=row[0].date(),
                meal_id=meal_id,
                meal_name=meal_name,
                total=int(row[1]),
                cancelled=int(row[2] or 0),
                in_process=int(row[3] or 0),
                ready=int(row[4] or 0),
                delivered=int(row[5] or 0),
            )
            for row in rows
        ]

    def _create_or_update_once(self, customer_id: str, cook_id: str, meal_id: str,
                               d, tz_id: str) -> Order:
        key = utc_key(d)

        with self.db.transaction() as conn:
            # 1) 当天菜单
            menu_row = conn.execute(
                f"SELECT {MENU_DAY_COLUMNS} FROM menu_days WHERE cook_id=? AND date=?",
                [cook_id, d]
            ).fetchone()
            if not menu_row:
                raise MenuDayNotFoundError()
            menu_day = row_to_menu_day(menu_row)

            # 2) 菜品必须在当天菜位中
            if menu_day.find_dish(meal_id) is None:
                raise InvalidSelectionError(details={"meal_id": meal_id, "date": d.isoformat()})

            # 3) 冻结价格
            meal = self.catalog.get_meal(meal_id)
            if meal is None:
                raise MealNotFoundError(details={"meal_id": meal_id})

            # 4) 截单时刻
            cutoff = cancel_until(d, tz_id)
            now = as_utc(self.clock())

            # 5) 按逻辑键新建或更新
            existing = self._get_by_key(conn, customer_id, cook_id, key)
            if existing is None:
                if now > cutoff:
                    raise CutoffExpiredError("Cutoff time has passed. You can no longer order for this day.")
                order_id = self._insert_order(conn, customer_id, cook_id, meal_id, key,
                                              meal.price_cents, cutoff, tz_id, now)
                action = "order_create"
            else:
                if not can_cancel(existing, now):
                    raise CutoffExpiredError()
                if existing.status in (OrderStatus.READY.value, OrderStatus.DELIVERED.value):
                    raise OrderStatusError(
                        f"Order is already {existing.status} and can no longer be changed.",
                        details={"status": existing.status}
                    )
                self._update_order(conn, existing, meal_id, meal.price_cents, cutoff, tz_id, now)
                order_id = existing.order_id
                action = "order_update"

            record_log(conn, action, customer_id, {
                "order_id": order_id,
                "cook_id": cook_id,
                "meal_id": meal_id,
                "date": d.isoformat(),
                "price_at_order_cents": meal.price_cents,
                "cancel_until_utc": cutoff.isoformat(),
                "previous_meal_id": existing.meal_id if existing else None,
            }, now, user_id=customer_id)

            order = self._get_by_key(conn, customer_id, cook_id, key)

        logger.info("%s %s for customer %s (cook %s, %s)", action, order.order_id,
                    customer_id, cook_id, d)
        return order

    def _get_by_key(self, conn, customer_id: str, cook_id: str, key: datetime) -> Optional[Order]:
        row = conn.execute(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE customer_id=? AND cook_id=? AND delivery_date_utc=?",
            [customer_id, cook_id, to_db_timestamp(key)]
        ).fetchone()
        return row_to_order(row) if row else None

    def _insert_order(self, conn, customer_id: str, cook_id: str, meal_id: str, key: datetime,
                      price_cents: int, cutoff: datetime, tz_id: str, now: datetime) -> str:
        """插入新订单；并发插入同一逻辑键时唯一约束抛出 DuplicateKeyError"""
        order_id = uuid.uuid4().hex
        conn.execute(
            f"INSERT INTO orders ({ORDER_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?,?,?)",
            [order_id, customer_id, cook_id, meal_id, to_db_timestamp(key), price_cents,
             OrderStatus.PENDING.value, to_db_timestamp(cutoff), tz_id,
             to_db_timestamp(now), to_db_timestamp(now)]
        )
        return order_id

    def _update_order(self, conn, existing: Order, meal_id: str, price_cents: int,
                      cutoff: datetime, tz_id: str, now: datetime):
        """原地更新；已取消的订单重新生效为 pending"""
        conn.execute(
            """
            UPDATE orders
            SET meal_id=?, price_at_order_cents=?, time_zone=?, cancel_until_utc=?,
                status=?, updated_at=?
            WHERE order_id=?
            """,
            [meal_id, price_cents, tz_id, to_db_timestamp(cutoff),
             OrderStatus.PENDING.value, to_db_timestamp(now), existing.order_id]
        )

    def _validate_status_transition(self, current_status: str, new_status: str):
        """验证订单状态转换是否合法"""
        if new_status not in ORDER_STATUS_TRANSITIONS.get(current_status, []):
            raise OrderStatusError(
                f"Cannot change order from {current_status} to {new_status}.",
                details={"from": current_status, "to": new_status}
            )

