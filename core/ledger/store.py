"""
Ledger 저장소

계좌/거래 행 단위 저장 및 조회.

쓰기 메서드는 트랜잭션을 직접 열지 않음.
원자성은 호출자(LedgerEngine, BackupService)가 db.transaction()으로 보장.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from core.ledger.models import (
    ACCOUNT_COLUMNS,
    TRANSACTION_COLUMNS,
    Account,
    BalanceDrift,
    LedgerTransaction,
)
from core.ledger.types import AccountType
from core.utils.money import from_cents, to_cents
from core.utils.timezone import now_utc, to_db_ts

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)

# update_account_fields에서 변경 가능한 컬럼
UPDATABLE_ACCOUNT_COLUMNS = frozenset({
    "name",
    "institution",
    "notes",
    "color",
    "is_archived",
    "display_order",
})


class LedgerStore:
    """Ledger 저장소

    accounts / transactions 테이블을 읽고 쓰는 클래스.
    잔액 증감은 SQLite가 평가하는 증분 식(balance_cents + ?)으로만 수행.

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # =========================================================================
    # 계좌
    # =========================================================================

    async def insert_account(
        self,
        account_id: str,
        user_id: str,
        name: str,
        account_type: str,
        currency: str,
        institution: str | None,
        notes: str | None,
        color: str,
        display_order: int,
    ) -> None:
        """계좌 행 저장 (잔액 0)"""
        now = to_db_ts(now_utc())
        await self.db.execute(
            """
            INSERT INTO accounts (
                account_id, user_id, name, account_type, currency, balance_cents,
                institution, notes, color, is_archived, display_order,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?, 0, ?, ?, ?)
            """,
            (
                account_id,
                user_id,
                name,
                account_type,
                currency,
                institution,
                notes,
                color,
                display_order,
                now,
                now,
            ),
        )

    async def get_account(self, user_id: str, account_id: str) -> Account | None:
        """소유자 확인 포함 계좌 조회

        Returns:
            계좌 (없거나 다른 사용자 소유면 None)
        """
        row = await self.db.fetchone(
            f"""
            SELECT {ACCOUNT_COLUMNS}
            FROM accounts
            WHERE account_id = ? AND user_id = ?
            """,
            (account_id, user_id),
        )
        return Account.from_row(row) if row else None

    async def get_accounts(
        self,
        user_id: str,
        include_archived: bool = False,
    ) -> list[Account]:
        """사용자 계좌 목록 (표시 순서 오름차순, 생성일 내림차순)"""
        sql = f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE user_id = ?"
        if not include_archived:
            sql += " AND is_archived = 0"
        sql += " ORDER BY display_order ASC, created_at DESC, rowid DESC"

        rows = await self.db.fetchall(sql, (user_id,))
        return [Account.from_row(row) for row in rows]

    async def update_account_fields(
        self,
        account_id: str,
        fields: dict[str, Any],
    ) -> None:
        """계좌 메타데이터 변경

        잔액/유형/통화는 변경 불가 (UPDATABLE_ACCOUNT_COLUMNS만 허용).
        """
        unknown = set(fields) - UPDATABLE_ACCOUNT_COLUMNS
        if unknown:
            raise ValueError(f"Not updatable: {sorted(unknown)}")

        if not fields:
            return

        # 컬럼명은 화이트리스트 검증을 거쳤으므로 문자열 조합 가능
        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = (*fields.values(), to_db_ts(now_utc()), account_id)
        await self.db.execute(
            f"UPDATE accounts SET {assignments}, updated_at = ? WHERE account_id = ?",
            params,
        )

    async def delete_account(self, account_id: str) -> None:
        """계좌 삭제 (거래는 FK CASCADE로 함께 삭제)"""
        await self.db.execute(
            "DELETE FROM accounts WHERE account_id = ?",
            (account_id,),
        )

    async def delete_user_accounts(self, user_id: str) -> int:
        """사용자의 모든 계좌 삭제

        Returns:
            삭제된 계좌 수
        """
        cursor = await self.db.execute(
            "DELETE FROM accounts WHERE user_id = ?",
            (user_id,),
        )
        return cursor.rowcount

    # =========================================================================
    # 잔액
    # =========================================================================

    async def increment_balance(self, account_id: str, delta_cents: int) -> int | None:
        """잔액 원자적 증감

        읽기-수정-쓰기를 애플리케이션에서 하지 않고
        SQLite가 balance_cents + ? 식을 평가.

        Returns:
            증감 후 잔액 (계좌가 없으면 None)
        """
        cursor = await self.db.execute(
            """
            UPDATE accounts
            SET balance_cents = balance_cents + ?, updated_at = ?
            WHERE account_id = ?
            """,
            (delta_cents, to_db_ts(now_utc()), account_id),
        )
        if cursor.rowcount == 0:
            return None

        row = await self.db.fetchone(
            "SELECT balance_cents FROM accounts WHERE account_id = ?",
            (account_id,),
        )
        return row[0] if row else None

    async def set_balance(self, account_id: str, balance_cents: int) -> None:
        """잔액 덮어쓰기 (재계산용)"""
        await self.db.execute(
            """
            UPDATE accounts
            SET balance_cents = ?, updated_at = ?
            WHERE account_id = ?
            """,
            (balance_cents, to_db_ts(now_utc()), account_id),
        )

    async def sum_transactions(self, account_id: str) -> int:
        """계좌 거래 금액 합계 (cents)"""
        row = await self.db.fetchone(
            """
            SELECT COALESCE(SUM(amount_cents), 0)
            FROM transactions
            WHERE account_id = ?
            """,
            (account_id,),
        )
        return row[0] if row else 0

    async def sum_balances(self, user_id: str, include_archived: bool = False) -> int:
        """사용자 계좌 잔액 합계 (cents)"""
        sql = "SELECT COALESCE(SUM(balance_cents), 0) FROM accounts WHERE user_id = ?"
        if not include_archived:
            sql += " AND is_archived = 0"

        row = await self.db.fetchone(sql, (user_id,))
        return row[0] if row else 0

    async def find_balance_drift(self, user_id: str | None = None) -> list[BalanceDrift]:
        """저장된 잔액 ≠ 거래 합계인 계좌 조회

        Args:
            user_id: 특정 사용자로 한정 (None이면 전체)
        """
        sql = """
            SELECT
                a.account_id,
                a.user_id,
                a.name,
                a.balance_cents,
                COALESCE(SUM(t.amount_cents), 0) AS computed_cents
            FROM accounts a
            LEFT JOIN transactions t ON t.account_id = a.account_id
        """
        params: tuple[Any, ...] = ()
        if user_id is not None:
            sql += " WHERE a.user_id = ?"
            params = (user_id,)
        sql += """
            GROUP BY a.account_id
            HAVING a.balance_cents != COALESCE(SUM(t.amount_cents), 0)
            ORDER BY a.user_id, a.account_id
        """

        rows = await self.db.fetchall(sql, params)
        return [
            BalanceDrift(
                account_id=row[0],
                user_id=row[1],
                name=row[2],
                stored_balance=from_cents(row[3]),
                computed_balance=from_cents(row[4]),
            )
            for row in rows
        ]

    # =========================================================================
    # 거래
    # =========================================================================

    async def insert_transaction(
        self,
        transaction_id: str,
        account_id: str,
        user_id: str,
        transaction_type: str,
        amount_cents: int,
        note: str | None,
        category: str | None,
        transaction_date: datetime,
    ) -> int:
        """거래 행 저장 (balance_after는 비어 있음)

        Returns:
            seq
        """
        cursor = await self.db.execute(
            """
            INSERT INTO transactions (
                transaction_id, account_id, user_id, transaction_type,
                amount_cents, note, category, transaction_date,
                balance_after_cents, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, NULL, ?)
            """,
            (
                transaction_id,
                account_id,
                user_id,
                transaction_type,
                amount_cents,
                note,
                category,
                to_db_ts(transaction_date),
                to_db_ts(now_utc()),
            ),
        )
        return cursor.lastrowid

    async def set_balance_after(self, transaction_id: str, balance_cents: int) -> None:
        """거래의 balance_after 스냅샷 기록"""
        await self.db.execute(
            """
            UPDATE transactions
            SET balance_after_cents = ?
            WHERE transaction_id = ?
            """,
            (balance_cents, transaction_id),
        )

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: str,
    ) -> LedgerTransaction | None:
        """소유자 확인 포함 거래 단건 조회"""
        row = await self.db.fetchone(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM transactions
            WHERE transaction_id = ? AND user_id = ?
            """,
            (transaction_id, user_id),
        )
        return LedgerTransaction.from_row(row) if row else None

    async def delete_transaction(self, transaction_id: str) -> bool:
        """거래 행 삭제

        Returns:
            삭제 여부
        """
        cursor = await self.db.execute(
            "DELETE FROM transactions WHERE transaction_id = ?",
            (transaction_id,),
        )
        return cursor.rowcount > 0

    async def query_transactions(
        self,
        user_id: str,
        account_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        transaction_type: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[LedgerTransaction], int]:
        """거래 목록 조회 (거래일 내림차순, 같은 시각은 나중에 기록된 순)

        기간은 [start, end] 양 끝 포함.

        Returns:
            (페이지 거래 목록, 조건에 맞는 전체 개수)
        """
        where = ["user_id = ?"]
        params: list[Any] = [user_id]

        if account_id is not None:
            where.append("account_id = ?")
            params.append(account_id)
        if start is not None:
            where.append("transaction_date >= ?")
            params.append(to_db_ts(start))
        if end is not None:
            where.append("transaction_date <= ?")
            params.append(to_db_ts(end))
        if transaction_type is not None:
            where.append("transaction_type = ?")
            params.append(transaction_type)

        where_sql = " AND ".join(where)

        count_row = await self.db.fetchone(
            f"SELECT COUNT(*) FROM transactions WHERE {where_sql}",
            tuple(params),
        )
        total = count_row[0] if count_row else 0

        sql = f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM transactions
            WHERE {where_sql}
            ORDER BY transaction_date DESC, seq DESC
        """
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            # SQLite: OFFSET은 LIMIT 없이 사용 불가
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        rows = await self.db.fetchall(sql, tuple(params))
        return [LedgerTransaction.from_row(row) for row in rows], total

    async def get_transactions_chronological(self, account_id: str) -> list[LedgerTransaction]:
        """계좌 거래 전체 (거래일 오름차순, 재생용)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM transactions
            WHERE account_id = ?
            ORDER BY transaction_date ASC, seq ASC
            """,
            (account_id,),
        )
        return [LedgerTransaction.from_row(row) for row in rows]

    async def get_user_transactions_since(
        self,
        user_id: str,
        since: datetime,
    ) -> list[tuple[LedgerTransaction, str, AccountType]]:
        """사용자 거래 중 since 이후 (오름차순, 계좌명/유형 포함)"""
        columns = ", ".join(f"t.{c.strip()}" for c in TRANSACTION_COLUMNS.split(","))
        rows = await self.db.fetchall(
            f"""
            SELECT {columns}, a.name, a.account_type
            FROM transactions t
            JOIN accounts a ON a.account_id = t.account_id
            WHERE t.user_id = ? AND t.transaction_date >= ?
            ORDER BY t.transaction_date ASC, t.seq ASC
            """,
            (user_id, to_db_ts(since)),
        )
        return [
            (LedgerTransaction.from_row(row[:-2]), row[-2], AccountType(row[-1]))
            for row in rows
        ]

    async def restamp_balance_after(self, account_id: str) -> int:
        """balance_after 스냅샷 전체 재계산

        거래일 오름차순으로 누적 합계를 다시 기록.

        Returns:
            갱신된 거래 수
        """
        transactions = await self.get_transactions_chronological(account_id)

        running = 0
        updates: list[tuple[int, str]] = []
        for tx in transactions:
            running += to_cents(tx.amount)
            updates.append((running, tx.transaction_id))

        if updates:
            await self.db.executemany(
                """
                UPDATE transactions
                SET balance_after_cents = ?
                WHERE transaction_id = ?
                """,
                updates,
            )

        logger.debug(f"Restamped {len(updates)} balance snapshots: {account_id}")
        return len(updates)
