"""
Ledger 스키마 초기화

시작 시 계좌/거래 테이블과 인덱스 생성.
CREATE IF NOT EXISTS 패턴으로 여러 번 호출해도 안전하게 동작.

금액 컬럼은 모두 정수 cents (소수점 2자리 고정).
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스)

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # accounts 테이블 (집합 루트, balance_cents는 거래 합계의 비정규화 값)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            account_id       TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            name             TEXT NOT NULL,
            account_type     TEXT NOT NULL,
            currency         TEXT NOT NULL DEFAULT 'USD',
            balance_cents    INTEGER NOT NULL DEFAULT 0,
            institution      TEXT,
            notes            TEXT,
            color            TEXT NOT NULL DEFAULT '#4A6C6F',
            is_archived      INTEGER NOT NULL DEFAULT 0,
            display_order    INTEGER NOT NULL DEFAULT 0,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # transactions 테이블 (seq: 같은 시각 거래의 정렬 기준)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            seq                  INTEGER PRIMARY KEY AUTOINCREMENT,
            transaction_id       TEXT NOT NULL UNIQUE,
            account_id           TEXT NOT NULL,
            user_id              TEXT NOT NULL,
            transaction_type     TEXT NOT NULL,
            amount_cents         INTEGER NOT NULL,
            note                 TEXT,
            category             TEXT,
            transaction_date     TEXT NOT NULL,
            balance_after_cents  INTEGER,
            created_at           TEXT NOT NULL,
            FOREIGN KEY (account_id) REFERENCES accounts(account_id) ON DELETE CASCADE
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """Ledger 인덱스 생성"""

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_accounts_user
        ON accounts(user_id, is_archived)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_account_date
        ON transactions(account_id, transaction_date, seq)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_user_date
        ON transactions(user_id, transaction_date)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_type
        ON transactions(transaction_type)
    """)
