"""
Ledger 도메인 모델

DB 행을 불변 dataclass로 변환하여 호출자에게 반환.
금액은 모두 Decimal (소수점 2자리).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from core.ledger.types import AccountType, TransactionType
from core.utils.money import from_cents
from core.utils.timezone import from_db_ts

# SELECT 컬럼 순서 (from_row 인덱스와 일치해야 함)
ACCOUNT_COLUMNS = (
    "account_id, user_id, name, account_type, currency, balance_cents, "
    "institution, notes, color, is_archived, display_order, created_at, updated_at"
)

TRANSACTION_COLUMNS = (
    "seq, transaction_id, account_id, user_id, transaction_type, amount_cents, "
    "note, category, transaction_date, balance_after_cents, created_at"
)


@dataclass(frozen=True)
class Account:
    """금융 계좌

    balance는 항상 소속 거래 amount 합계와 같아야 함.
    """

    account_id: str
    user_id: str
    name: str
    account_type: AccountType
    currency: str
    balance: Decimal
    institution: str | None
    notes: str | None
    color: str
    is_archived: bool
    display_order: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> Account:
        """ACCOUNT_COLUMNS 순서의 행에서 생성"""
        return cls(
            account_id=row[0],
            user_id=row[1],
            name=row[2],
            account_type=AccountType(row[3]),
            currency=row[4],
            balance=from_cents(row[5]),
            institution=row[6],
            notes=row[7],
            color=row[8],
            is_archived=bool(row[9]),
            display_order=row[10],
            created_at=from_db_ts(row[11]),
            updated_at=from_db_ts(row[12]),
        )

    def to_dict(self) -> dict[str, Any]:
        """백업/내보내기용 딕셔너리 (camelCase 키)"""
        return {
            "id": self.account_id,
            "userId": self.user_id,
            "name": self.name,
            "type": self.account_type.value,
            "currency": self.currency,
            "balance": str(self.balance),
            "institution": self.institution,
            "notes": self.notes,
            "color": self.color,
            "isArchived": self.is_archived,
            "displayOrder": self.display_order,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class LedgerTransaction:
    """계좌 거래 (생성 후 불변)

    balance_after: 적용 직후 계좌 잔액 스냅샷.
    이후 이전 거래가 삭제되면 갱신되지 않아 실제 누적값과 다를 수 있음.
    """

    seq: int
    transaction_id: str
    account_id: str
    user_id: str
    transaction_type: TransactionType
    amount: Decimal
    note: str | None
    category: str | None
    transaction_date: datetime
    balance_after: Decimal | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> LedgerTransaction:
        """TRANSACTION_COLUMNS 순서의 행에서 생성"""
        return cls(
            seq=row[0],
            transaction_id=row[1],
            account_id=row[2],
            user_id=row[3],
            transaction_type=TransactionType(row[4]),
            amount=from_cents(row[5]),
            note=row[6],
            category=row[7],
            transaction_date=from_db_ts(row[8]),
            balance_after=from_cents(row[9]) if row[9] is not None else None,
            created_at=from_db_ts(row[10]),
        )

    def to_dict(self) -> dict[str, Any]:
        """백업/내보내기용 딕셔너리 (camelCase 키)"""
        return {
            "id": self.transaction_id,
            "accountId": self.account_id,
            "userId": self.user_id,
            "type": self.transaction_type.value,
            "amount": str(self.amount),
            "note": self.note,
            "category": self.category,
            "transactionDate": self.transaction_date.isoformat(),
            "balanceAfter": str(self.balance_after) if self.balance_after is not None else None,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AppliedTransaction:
    """ApplyTransaction 결과"""

    transaction: LedgerTransaction
    new_balance: Decimal


@dataclass(frozen=True)
class TransactionPage:
    """거래 목록 페이지 (거래일 내림차순)"""

    transactions: list[LedgerTransaction]
    total: int
    limit: int | None
    offset: int


@dataclass(frozen=True)
class HistoryPoint:
    """순자산 히스토리 데이터 포인트"""

    date: datetime
    amount: Decimal
    account_id: str
    account_name: str
    account_type: AccountType
    balance_after: Decimal | None


@dataclass(frozen=True)
class NetWorthHistory:
    """순자산 히스토리 (차트용)

    현재 잔액과 최근 거래의 balance_after 스냅샷으로 구성.
    별도의 잔액 이력 테이블은 없음.
    """

    current_net_worth: Decimal
    accounts: list[Account]
    history: list[HistoryPoint] = field(default_factory=list)


@dataclass(frozen=True)
class BalanceDrift:
    """저장된 잔액과 거래 합계의 불일치"""

    account_id: str
    user_id: str
    name: str
    stored_balance: Decimal
    computed_balance: Decimal

    @property
    def difference(self) -> Decimal:
        """stored - computed"""
        return self.stored_balance - self.computed_balance
