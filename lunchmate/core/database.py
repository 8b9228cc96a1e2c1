"""
数据库连接和管理模块
提供 DuckDB 连接、表结构初始化和事务上下文

数据库表说明：
- menu_days: 厨师每日菜单（三道菜位、草稿/发布/关闭生命周期）
- orders: 顾客订单（按 顾客+厨师+配送日 唯一）
- meals: 菜品目录（外部维护，只读）
- reviews: 菜品评价（外部维护，只读聚合）
- users: 用户目录（显示名与角色，只读）
- logs: 系统操作日志

唯一性由表级 UNIQUE 约束保证，服务层不依赖先查后写。
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import duckdb

from .exceptions import (
    BaseApplicationError,
    ConcurrencyError,
    DatabaseError,
    DuplicateKeyError,
)
from ..config.settings import settings

logger = logging.getLogger(__name__)

# 完整的表结构定义
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS users (
  user_id TEXT PRIMARY KEY,
  name TEXT,
  role TEXT CHECK(role IN ('cook','customer','admin')) NOT NULL,
  created_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS meals (
  meal_id TEXT PRIMARY KEY,
  cook_id TEXT,
  cook_name TEXT,
  name TEXT NOT NULL,
  description TEXT,
  ingredients TEXT,
  price_cents INTEGER NOT NULL,
  image_url TEXT,
  is_active BOOLEAN DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS reviews_id_seq;
CREATE TABLE IF NOT EXISTS reviews (
  review_id INTEGER DEFAULT nextval('reviews_id_seq') PRIMARY KEY,
  meal_id TEXT NOT NULL,
  user_id TEXT NOT NULL,
  rating INTEGER CHECK(rating BETWEEN 1 AND 5) NOT NULL,
  comment TEXT,
  created_at TIMESTAMP DEFAULT now(),
  UNIQUE (meal_id, user_id)
);

CREATE TABLE IF NOT EXISTS menu_days (
  menu_day_id BIGINT PRIMARY KEY,
  cook_id TEXT NOT NULL,
  date DATE NOT NULL,
  status TEXT CHECK(status IN ('draft','published','closed')) NOT NULL,
  time_zone TEXT,
  dishes_json JSON,
  published_at TIMESTAMP,
  closed_at TIMESTAMP,
  confirmations_count INTEGER DEFAULT 0,
  created_at TIMESTAMP,
  updated_at TIMESTAMP,
  UNIQUE (cook_id, date)
);

CREATE TABLE IF NOT EXISTS orders (
  order_id TEXT PRIMARY KEY,
  customer_id TEXT NOT NULL,
  cook_id TEXT NOT NULL,
  meal_id TEXT NOT NULL,
  delivery_date_utc TIMESTAMP NOT NULL,
  price_at_order_cents INTEGER NOT NULL,
  status TEXT CHECK(status IN ('pending','ready','delivered','cancelled')) NOT NULL,
  cancel_until_utc TIMESTAMP NOT NULL,
  time_zone TEXT,
  created_at TIMESTAMP,
  updated_at TIMESTAMP,
  UNIQUE (customer_id, cook_id, delivery_date_utc)
);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id TEXT,
  actor_id TEXT,
  action TEXT,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_actor ON logs(actor_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


def resolve_db_path(database_url: str) -> str:
    """把 duckdb:// 形式的连接串转换为 duckdb.connect 可用的路径"""
    if database_url.startswith("duckdb://"):
        database_url = database_url[len("duckdb://"):]
    if not database_url or database_url == ":memory:":
        return ":memory:"
    path = Path(database_url)
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path)


class DatabaseManager:
    """数据库管理器，封装所有数据库操作"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or settings.database_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接（首次访问时建表）"""
        with self._lock:
            if self._connection is None:
                self._connection = duckdb.connect(resolve_db_path(self.db_path))
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            try:
                self._connection.execute("LOAD json")
            except duckdb.Error as e:
                # 新版本 DuckDB 会自动加载 JSON 扩展
                logger.debug("JSON extension not loaded explicitly: %s", e)

            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """初始化数据库"""
        self.get_connection()
        logger.info("Database ready at %s", self.db_path)

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        领域异常原样抛出；唯一约束冲突转换为 DuplicateKeyError，
        事务冲突转换为 ConcurrencyError，其余数据库异常转换为 DatabaseError。
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                try:
                    conn.execute("ROLLBACK")
                except duckdb.Error:
                    logger.warning("Rollback failed after error: %s", e)

                if isinstance(e, BaseApplicationError):
                    raise
                if isinstance(e, duckdb.ConstraintException) and "duplicate key" in str(e).lower():
                    raise DuplicateKeyError(f"Duplicate key: {e}") from e
                if isinstance(e, duckdb.TransactionException) or "conflict" in str(e).lower():
                    raise ConcurrencyError("System busy, please retry.") from e
                raise DatabaseError(f"Database operation failed: {e}") from e

    def execute_query(self, query: str, params: list = None) -> list:
        """执行查询并返回结果"""
        try:
            with self._lock:
                con = self.connection
                if params:
                    return con.execute(query, params).fetchall()
                return con.execute(query).fetchall()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        """执行查询并返回单条结果"""
        try:
            with self._lock:
                con = self.connection
                if params:
                    return con.execute(query, params).fetchone()
                return con.execute(query).fetchone()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def close(self):
        """关闭连接（测试和应用关闭时使用）"""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


# 全局数据库管理器实例
db_manager = DatabaseManager()
