"""
操作日志
所有业务变更在同一事务内写入 logs 表
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.database import DatabaseManager, db_manager
from ..core.day_keys import to_db_timestamp


def record_log(conn, action: str, actor_id: Optional[str], detail: Dict[str, Any],
               now: datetime, user_id: Optional[str] = None):
    """在给定连接（通常处于事务中）上追加一条日志，时间取调用方服务的时钟"""
    conn.execute(
        "INSERT INTO logs(user_id, actor_id, action, detail_json, created_at) VALUES (?,?,?,?,?)",
        [user_id, actor_id, action, json.dumps(detail, ensure_ascii=False, default=str),
         to_db_timestamp(now)],
    )


class LogService:
    """日志查询"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def list_logs(self, actor_id: Optional[str] = None, action: Optional[str] = None,
                  page: int = 1, size: int = 20) -> Dict[str, Any]:
        """分页查询日志，可按操作人和动作过滤"""
        conditions = []
        params: List[Any] = []
        if actor_id:
            conditions.append("(actor_id=? OR user_id=?)")
            params.extend([actor_id, actor_id])
        if action:
            conditions.append("action=?")
            params.append(action)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total_row = self.db.execute_one(f"SELECT COUNT(*) FROM logs {where}", params)
        total = total_row[0] if total_row else 0

        offset = (page - 1) * size
        rows = self.db.execute_query(
            f"""
            SELECT log_id, user_id, actor_id, action, detail_json, created_at
            FROM logs {where}
            ORDER BY log_id DESC
            LIMIT ? OFFSET ?
            """,
            params + [size, offset]
        )

        logs = []
        for row in rows:
            detail = row[4]
            if isinstance(detail, str):
                try:
                    detail = json.loads(detail)
                except json.JSONDecodeError:
                    pass
            logs.append({
                "log_id": row[0],
                "user_id": row[1],
                "actor_id": row[2],
                "action": row[3],
                "detail": detail,
                "created_at": str(row[5]),
            })

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "size": size,
            "pages": (total + size - 1) // size,
        }
