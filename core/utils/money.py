"""
금액 유틸리티

내부 계산: Decimal (소수점 2자리) | DB 저장: 정수 최소 단위 (cents)

정수로 저장하면 SQLite가 잔액 증감과 합계를 오차 없이 계산할 수 있음.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from core.constants import Limits
from core.errors import ValidationError

# 소수점 2자리 기준값
CENT = Decimal("0.01")

# 허용되는 최대 절대값 (미만)
MAX_AMOUNT = Decimal(10) ** Limits.AMOUNT_MAX_DIGITS


def quantize(value: Decimal) -> Decimal:
    """소수점 2자리로 반올림 (ROUND_HALF_UP)"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any, field: str = "amount") -> Decimal:
    """입력값을 금액(Decimal)으로 변환

    Args:
        value: Decimal, int, float, str
        field: 오류 메시지에 사용할 필드명

    Returns:
        소수점 2자리 Decimal

    Raises:
        ValidationError: 숫자가 아니거나 범위를 벗어난 경우

    Example:
        >>> parse_amount("12.345")
        Decimal('12.35')
    """
    # bool은 int의 하위 타입이므로 먼저 거부
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")

    if isinstance(value, float):
        # 이진 부동소수점 오차 방지
        value = repr(value)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} is required")

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be a number: {value!r}") from e

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number: {value!r}")

    # 반올림 전후 모두 확인 (9999999999999.999 → 10000000000000.00)
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range: {value!r}")

    amount = quantize(amount)
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range: {value!r}")

    return amount


def to_cents(amount: Decimal) -> int:
    """Decimal 금액을 정수 cents로 변환"""
    return int(quantize(amount) * 100)


def from_cents(cents: int | None) -> Decimal:
    """정수 cents를 Decimal 금액으로 변환 (None이면 0)"""
    if cents is None:
        return Decimal("0.00")
    return quantize(Decimal(cents) / 100)
