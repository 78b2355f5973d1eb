"""
유틸리티 패키지

타임존 처리, 금액 변환 등 공통 유틸리티
"""

from core.utils.money import (
    CENT,
    from_cents,
    parse_amount,
    quantize,
    to_cents,
)
from core.utils.timezone import (
    ensure_utc,
    from_db_ts,
    now_utc,
    to_db_ts,
)

__all__ = [
    "CENT",
    "from_cents",
    "parse_amount",
    "quantize",
    "to_cents",
    "ensure_utc",
    "from_db_ts",
    "now_utc",
    "to_db_ts",
]
