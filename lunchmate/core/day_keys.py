"""
日期键与截单时间计算

- 配送日身份与时区无关：normalize_local_date 只保留日历日期，
  utc_key 把它映射为“同一日历日 00:00 UTC”，仅作为存储/查询分区键。
- 只有截单时刻与时区相关：cancel_until 取当天本地 cutoff_hour 点，
  按该时区当日的偏移（含夏令时）换算为 UTC 绝对时刻。
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzlocal.windows_tz import win_tz

from ..config.settings import settings
from .exceptions import InvalidArgumentError

DateLike = Union[date, datetime, str]


def utc_now() -> datetime:
    """当前 UTC 时间（带时区）"""
    return datetime.now(timezone.utc)


def resolve_time_zone(tz_id: Optional[str]) -> Tuple[tzinfo, bool]:
    """
    解析时区标识：先按 IANA 查找，再按 Windows 时区名映射到 IANA

    Returns:
        (tzinfo, resolved): 无法解析时返回 (UTC, False)，从不抛异常；
        是否记录日志由调用方决定
    """
    if not tz_id or not str(tz_id).strip():
        return timezone.utc, False

    key = str(tz_id).strip()
    try:
        return ZoneInfo(key), True
    except (ZoneInfoNotFoundError, ValueError):
        pass

    iana = win_tz.get(key)
    if iana:
        try:
            return ZoneInfo(iana), True
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return timezone.utc, False


def normalize_local_date(value: DateLike) -> date:
    """去掉时分秒和时区，只保留日历日期"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
    raise TypeError(f"Unsupported date value: {type(value).__name__}")


def parse_local_date(value: DateLike, field: str = "date") -> date:
    """服务入口使用：无法解析的日期转换为 InvalidArgumentError"""
    try:
        return normalize_local_date(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(str(e), details={"field": field})


def utc_key(day: DateLike) -> datetime:
    """同一日历日 00:00 UTC，作为订单的配送日键"""
    d = normalize_local_date(day)
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def week_range(week_start: DateLike) -> Tuple[date, date]:
    """一周范围 [start, start + 7天)"""
    start = normalize_local_date(week_start)
    return start, start + timedelta(days=7)


def cancel_until(day: DateLike, tz_id: Optional[str], cutoff_hour: Optional[int] = None) -> datetime:
    """
    计算截单时刻：当天本地 cutoff_hour:00 对应的 UTC 时刻

    Args:
        day: 配送日（本地日历日）
        tz_id: IANA 时区标识，无法解析时按 UTC 处理
        cutoff_hour: 截单小时，默认取配置 settings.cutoff_hour
    """
    if cutoff_hour is None:
        cutoff_hour = settings.cutoff_hour
    d = normalize_local_date(day)
    tz, _ = resolve_time_zone(tz_id)
    cutoff_local = datetime.combine(d, time(cutoff_hour, 0), tzinfo=tz)
    return cutoff_local.astimezone(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """把数据库读出的无时区时间视为 UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    """写库前统一转换为无时区的 UTC 时间"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
