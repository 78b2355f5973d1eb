"""
개인 자산 원장 (Ledger)

계좌 잔액 = 거래 금액 합계 불변식을 유지하는 계좌/거래 관리 모듈.
모든 잔액 변경은 LedgerEngine을 통해서만 수행.

사용 예시:
```python
from core.ledger import LedgerEngine, init_ledger_schema

await init_ledger_schema(db)
engine = LedgerEngine(db)

account = await engine.create_account(user_id, "Savings", "Savings", "1000")
await engine.apply_transaction(user_id, account.account_id, "interest", "2.50")

# 순자산 조회
net_worth = await engine.net_worth(user_id)
```
"""

from core.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from core.ledger.backup import BackupService, ImportResult
from core.ledger.engine import LedgerEngine
from core.ledger.models import (
    Account,
    AppliedTransaction,
    BalanceDrift,
    HistoryPoint,
    LedgerTransaction,
    NetWorthHistory,
    TransactionPage,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.ledger.types import (
    OPENING_BALANCE_NOTE,
    POSITIVE_TRANSACTION_TYPES,
    AccountType,
    TransactionType,
    signed_amount,
)

__all__ = [
    # 핵심 클래스
    "LedgerEngine",
    "LedgerStore",
    "BackupService",
    "init_ledger_schema",
    # 모델
    "Account",
    "LedgerTransaction",
    "AppliedTransaction",
    "TransactionPage",
    "HistoryPoint",
    "NetWorthHistory",
    "BalanceDrift",
    "ImportResult",
    # Enum
    "AccountType",
    "TransactionType",
    # 부호 규칙
    "POSITIVE_TRANSACTION_TYPES",
    "OPENING_BALANCE_NOTE",
    "signed_amount",
    # 예외
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "PersistenceError",
]
