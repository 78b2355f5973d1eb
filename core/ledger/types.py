"""
Ledger 타입 정의

계좌 유형, 거래 유형 Enum 및 부호 규칙
"""

from decimal import Decimal
from enum import Enum


class AccountType(str, Enum):
    """계좌 유형

    str을 상속하여 JSON 직렬화 가능.
    """

    CASH = "Cash"
    SAVINGS = "Savings"
    INVESTMENT = "Investment"
    RETIREMENT = "Retirement"
    CRYPTO = "Crypto"
    DEBT = "Debt"


class TransactionType(str, Enum):
    """거래 유형"""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTEREST = "interest"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


# 양수로 저장되는 거래 유형 (나머지는 모두 음수)
POSITIVE_TRANSACTION_TYPES: frozenset[TransactionType] = frozenset({
    TransactionType.DEPOSIT,
    TransactionType.INTEREST,
})

# 계좌 생성 시 자동 생성되는 개시 잔액 거래 메모
OPENING_BALANCE_NOTE: str = "Opening Balance"


def signed_amount(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """거래 유형에 따른 저장 금액 계산

    부호 정규화는 이 함수 한 곳에서만 수행.
    호출자는 크기만 전달하고 부호는 유형에서 결정:
    - deposit, interest: +|amount|
    - 그 외: -|amount|

    Args:
        transaction_type: 거래 유형
        amount: 입력 금액 (부호 무시)

    Returns:
        저장할 부호 있는 금액
    """
    magnitude = abs(amount)
    if transaction_type in POSITIVE_TRANSACTION_TYPES:
        return magnitude
    return -magnitude
