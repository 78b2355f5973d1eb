"""
Ledger 입력 검증

엔진과 백업 서비스가 공유하는 입력 정규화 함수.
잘못된 입력은 모두 ValidationError.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any

from core.constants import Defaults, Limits
from core.errors import ValidationError
from core.ledger.types import AccountType, TransactionType
from core.utils.timezone import ensure_utc

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def require_user(user_id: Any) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id is required")
    return user_id


def validate_name(name: Any) -> str:
    """계좌명 (앞뒤 공백 제거, 1~100자)"""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    name = name.strip()
    if len(name) > Limits.ACCOUNT_NAME_MAX:
        raise ValidationError(
            f"name must be at most {Limits.ACCOUNT_NAME_MAX} characters"
        )
    return name


def parse_account_type(value: Any) -> AccountType:
    try:
        return AccountType(value)
    except ValueError as e:
        valid = [t.value for t in AccountType]
        raise ValidationError(f"Invalid account type: {value!r}. Valid types: {valid}") from e


def parse_transaction_type(value: Any) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError as e:
        valid = [t.value for t in TransactionType]
        raise ValidationError(
            f"Invalid transaction type: {value!r}. Valid types: {valid}"
        ) from e


def validate_currency(value: Any) -> str:
    """통화 코드 (대문자 3자리, 소문자 입력은 대문자로 변환)"""
    currency = str(value).strip().upper()
    if not CURRENCY_PATTERN.match(currency):
        raise ValidationError(f"Invalid currency code: {value!r}")
    return currency


def validate_color(value: Any) -> str:
    if not isinstance(value, str) or not COLOR_PATTERN.match(value):
        raise ValidationError(f"color must look like #RRGGBB: {value!r}")
    return value


def validate_display_order(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"display_order must be an integer: {value!r}")
    return value


def optional_text(value: Any, field: str, max_length: int | None) -> str | None:
    """선택 텍스트 필드 (빈 문자열은 None)"""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def parse_timestamp(value: Any, field: str) -> datetime | None:
    """datetime / date / ISO 문자열 → UTC datetime

    date만 주어지면 해당 일 00:00 UTC. timezone 없는 값은 UTC로 간주.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return ensure_utc(datetime.combine(value, time.min))
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.strip()))
        except ValueError as e:
            raise ValidationError(f"{field} is not a valid ISO timestamp: {value!r}") from e
    raise ValidationError(f"{field} must be a datetime: {value!r}")


def validate_page(limit: Any, offset: Any) -> tuple[int | None, int]:
    """페이지 파라미터 (limit: 1~MAX_PAGE_LIMIT 또는 None, offset >= 0)"""
    if limit is not None:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError(f"limit must be an integer: {limit!r}")
        if not 1 <= limit <= Defaults.MAX_PAGE_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {Defaults.MAX_PAGE_LIMIT}"
            )
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationError(f"offset must be a non-negative integer: {offset!r}")
    return limit, offset
