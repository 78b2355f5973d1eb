"""
타임존 유틸리티

내부 저장: UTC ISO-8601 문자열 (마이크로초 고정 자릿수)

자릿수가 고정되어 있으므로 문자열 정렬 순서 = 시간 순서.
SQLite에서 문자열 비교로 기간 필터링 가능.
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.

    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """datetime을 UTC로 변환

    Args:
        dt: datetime 객체 (naive면 UTC로 간주)

    Returns:
        UTC 타임존의 datetime
    """
    if dt.tzinfo is None:
        # naive datetime은 UTC로 간주
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db_ts(dt: datetime) -> str:
    """datetime을 DB 저장용 문자열로 변환

    Example:
        >>> to_db_ts(datetime(2026, 2, 20, 16, 0, tzinfo=timezone.utc))
        '2026-02-20T16:00:00.000000+00:00'
    """
    return ensure_utc(dt).isoformat(timespec="microseconds")


def from_db_ts(value: str) -> datetime:
    """DB 문자열을 UTC datetime으로 변환"""
    return ensure_utc(datetime.fromisoformat(value))
