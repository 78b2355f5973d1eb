"""
Ledger 엔진

계좌 잔액 = 거래 금액 합계 불변식을 유지하는 단일 쓰기 경로.

모든 변경(계좌 생성 + 개시 잔액, 거래 적용, 거래 취소)은 하나의
DB 트랜잭션 안에서 실행되고, 중간에 실패하면 전체가 롤백됨.
잔액 증감은 SQLite가 평가하는 증분 식으로 수행하여 동시 적용 시에도
갱신 손실이 없음.

사용 예시:
```python
engine = LedgerEngine(db)

account = await engine.create_account(
    user_id, "Checking", "Cash", opening_balance="100.00"
)
result = await engine.apply_transaction(
    user_id, account.account_id, "withdrawal", "50"
)
result.new_balance  # Decimal("50.00")
```
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncIterator
from uuid import uuid4

from core.constants import Defaults, Limits
from core.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from core.ledger.models import (
    Account,
    AppliedTransaction,
    BalanceDrift,
    HistoryPoint,
    LedgerTransaction,
    NetWorthHistory,
    TransactionPage,
)
from core.ledger.store import LedgerStore
from core.ledger.types import (
    OPENING_BALANCE_NOTE,
    AccountType,
    TransactionType,
    signed_amount,
)
from core.ledger.validation import (
    optional_text,
    parse_account_type,
    parse_timestamp,
    parse_transaction_type,
    require_user,
    validate_color,
    validate_currency,
    validate_display_order,
    validate_name,
    validate_page,
)
from core.utils.money import from_cents, parse_amount, to_cents
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class LedgerEngine:
    """Ledger 엔진

    계좌 생명주기, 거래 적용/취소, 잔액 재계산, 조회 API 제공.
    모든 호출은 인증된 user_id를 받아 (user_id, account_id) 소유권으로 범위를 제한.
    다른 사용자 소유 자원은 존재하지 않는 것과 동일하게 NotFoundError.

    Args:
        db: 연결된 SQLiteAdapter
        default_currency: 통화 미지정 시 사용할 기본 통화
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        default_currency: str = Defaults.CURRENCY,
    ):
        self.db = db
        self.store = LedgerStore(db)
        self.default_currency = validate_currency(default_currency)

    # =========================================================================
    # 계좌
    # =========================================================================

    async def create_account(
        self,
        user_id: str,
        name: str,
        account_type: AccountType | str,
        opening_balance: Any = None,
        currency: str | None = None,
        institution: str | None = None,
        notes: str | None = None,
        color: str | None = None,
        display_order: int = Defaults.DISPLAY_ORDER,
    ) -> Account:
        """계좌 생성

        잔액 0으로 계좌를 만든 뒤, 개시 잔액이 0이 아니면
        "Opening Balance" 거래를 일반 거래와 같은 적용 경로로 기록.
        Debt 계좌에 양수 개시 잔액이 오면 음수로 변환.

        Args:
            user_id: 소유자
            name: 계좌명 (1~100자)
            account_type: Cash, Savings, Investment, Retirement, Crypto, Debt
            opening_balance: 개시 잔액 (기본 0)
            currency: 통화 코드 (기본: 설정의 default_currency)

        Returns:
            개시 잔액 적용 후 계좌

        Raises:
            ValidationError: 이름/유형/금액이 잘못된 경우
        """
        user_id = require_user(user_id)
        name = validate_name(name)
        parsed_type = parse_account_type(account_type)

        if opening_balance is None or opening_balance == "":
            opening = Decimal("0.00")
        else:
            opening = parse_amount(opening_balance, "opening_balance")

        # Debt 계좌는 0 이하에서 시작
        if parsed_type == AccountType.DEBT and opening > 0:
            opening = -opening

        currency = validate_currency(currency or self.default_currency)
        institution = optional_text(institution, "institution", Limits.INSTITUTION_MAX)
        notes = optional_text(notes, "notes", None)
        color = validate_color(color) if color else Defaults.ACCOUNT_COLOR
        display_order = validate_display_order(display_order)

        account_id = str(uuid4())

        async with atomic(self.db):
            await self.store.insert_account(
                account_id=account_id,
                user_id=user_id,
                name=name,
                account_type=parsed_type.value,
                currency=currency,
                institution=institution,
                notes=notes,
                color=color,
                display_order=display_order,
            )

            if opening != 0:
                await self._apply(
                    user_id=user_id,
                    account_id=account_id,
                    transaction_type=(
                        TransactionType.DEPOSIT if opening > 0 else TransactionType.WITHDRAWAL
                    ),
                    amount=opening,
                    note=OPENING_BALANCE_NOTE,
                    category=None,
                    transaction_date=now_utc(),
                )

            account = await self.store.get_account(user_id, account_id)

        assert account is not None
        logger.info(
            f"Account created: {account_id} ({parsed_type.value}, opening={opening})"
        )
        return account

    async def get_account(self, user_id: str, account_id: str) -> Account:
        """계좌 단건 조회

        Raises:
            NotFoundError: 없거나 다른 사용자 소유
        """
        async with translate_db_errors():
            return await self._get_owned_account(user_id, account_id)

    async def list_accounts(
        self,
        user_id: str,
        include_archived: bool = False,
    ) -> list[Account]:
        """사용자 계좌 목록 (표시 순서, 최신 생성 순)"""
        user_id = require_user(user_id)
        async with translate_db_errors():
            return await self.store.get_accounts(user_id, include_archived)

    async def update_account(
        self,
        user_id: str,
        account_id: str,
        name: str | None = None,
        institution: str | None = None,
        notes: str | None = None,
        color: str | None = None,
        is_archived: bool | None = None,
        display_order: int | None = None,
    ) -> Account:
        """계좌 메타데이터 변경

        None인 인자는 변경하지 않음. institution/notes는 빈 문자열로 지울 수 있음.
        잔액, 유형, 통화는 이 경로로 변경할 수 없음.
        """
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = validate_name(name)
        if institution is not None:
            fields["institution"] = optional_text(
                institution, "institution", Limits.INSTITUTION_MAX
            )
        if notes is not None:
            fields["notes"] = optional_text(notes, "notes", None)
        if color is not None:
            fields["color"] = validate_color(color)
        if is_archived is not None:
            fields["is_archived"] = 1 if is_archived else 0
        if display_order is not None:
            fields["display_order"] = validate_display_order(display_order)

        async with atomic(self.db):
            await self._get_owned_account(user_id, account_id)
            await self.store.update_account_fields(account_id, fields)
            account = await self.store.get_account(user_id, account_id)

        assert account is not None
        if fields:
            logger.info(f"Account updated: {account_id} ({', '.join(fields)})")
        return account

    async def archive_account(self, user_id: str, account_id: str) -> Account:
        """계좌 보관 (목록에서 숨김, 해제 가능)"""
        return await self.update_account(user_id, account_id, is_archived=True)

    async def unarchive_account(self, user_id: str, account_id: str) -> Account:
        """계좌 보관 해제"""
        return await self.update_account(user_id, account_id, is_archived=False)

    async def delete_account(self, user_id: str, account_id: str) -> None:
        """계좌 영구 삭제 (모든 거래 함께 삭제)"""
        async with atomic(self.db):
            await self._get_owned_account(user_id, account_id)
            await self.store.delete_account(account_id)

        logger.info(f"Account deleted: {account_id}")

    async def delete_user_ledger(self, user_id: str) -> int:
        """사용자의 모든 계좌와 거래 삭제 (사용자 탈퇴 처리용)

        Returns:
            삭제된 계좌 수
        """
        user_id = require_user(user_id)
        async with atomic(self.db):
            deleted = await self.store.delete_user_accounts(user_id)

        logger.info(f"User ledger deleted: {user_id} ({deleted} accounts)")
        return deleted

    # =========================================================================
    # 거래 적용 / 취소
    # =========================================================================

    async def apply_transaction(
        self,
        user_id: str,
        account_id: str,
        transaction_type: TransactionType | str,
        amount: Any,
        note: str | None = None,
        category: str | None = None,
        transaction_date: datetime | date | str | None = None,
    ) -> AppliedTransaction:
        """거래 적용

        거래 저장 → 잔액 증감 → balance_after 기록을 하나의 단위로 실행.
        금액 부호는 거래 유형에서 결정 (deposit/interest만 양수).

        Args:
            user_id: 요청 사용자
            account_id: 대상 계좌
            transaction_type: deposit, withdrawal, interest, expense, transfer, adjustment
            amount: 금액 (크기만 사용)
            note: 메모 (최대 255자)
            category: 분류 (최대 50자)
            transaction_date: 거래 시각 (기본: 현재)

        Returns:
            생성된 거래와 적용 후 잔액

        Raises:
            ValidationError: 유형/금액이 잘못된 경우
            NotFoundError: 계좌가 없거나 다른 사용자 소유
        """
        parsed_type = parse_transaction_type(transaction_type)
        raw_amount = parse_amount(amount, "amount")
        note = optional_text(note, "note", Limits.NOTE_MAX)
        category = optional_text(category, "category", Limits.CATEGORY_MAX)
        when = parse_timestamp(transaction_date, "transaction_date") or now_utc()

        async with atomic(self.db):
            await self._get_owned_account(user_id, account_id)
            result = await self._apply(
                user_id=user_id,
                account_id=account_id,
                transaction_type=parsed_type,
                amount=raw_amount,
                note=note,
                category=category,
                transaction_date=when,
            )

        logger.info(
            f"Transaction applied: {result.transaction.transaction_id} "
            f"({parsed_type.value} {result.transaction.amount}) "
            f"account={account_id} balance={result.new_balance}"
        )
        return result

    async def _apply(
        self,
        user_id: str,
        account_id: str,
        transaction_type: TransactionType,
        amount: Decimal,
        note: str | None,
        category: str | None,
        transaction_date: datetime,
    ) -> AppliedTransaction:
        """거래 적용 (열린 트랜잭션 안에서만 호출)"""
        stored_cents = to_cents(signed_amount(transaction_type, amount))
        transaction_id = str(uuid4())

        await self.store.insert_transaction(
            transaction_id=transaction_id,
            account_id=account_id,
            user_id=user_id,
            transaction_type=transaction_type.value,
            amount_cents=stored_cents,
            note=note,
            category=category,
            transaction_date=transaction_date,
        )

        balance_cents = await self.store.increment_balance(account_id, stored_cents)
        if balance_cents is None:
            raise NotFoundError(f"Account not found: {account_id}")

        await self.store.set_balance_after(transaction_id, balance_cents)

        transaction = await self.store.get_transaction(user_id, transaction_id)
        assert transaction is not None
        return AppliedTransaction(
            transaction=transaction,
            new_balance=from_cents(balance_cents),
        )

    async def reverse_transaction(
        self,
        user_id: str,
        transaction_id: str,
        account_id: str | None = None,
    ) -> Decimal:
        """거래 삭제 (적용의 정확한 역연산)

        거래 행 삭제와 잔액 차감(balance -= amount)을 하나의 단위로 실행.
        이후 거래들의 balance_after는 다시 계산하지 않음
        (rebuild_balance_snapshots로 별도 복구).

        Args:
            user_id: 요청 사용자
            transaction_id: 삭제할 거래
            account_id: 지정 시 해당 계좌의 거래인지도 확인

        Returns:
            삭제 후 계좌 잔액

        Raises:
            NotFoundError: 거래가 없거나 다른 사용자 소유
        """
        user_id = require_user(user_id)

        async with atomic(self.db):
            transaction = await self.store.get_transaction(user_id, transaction_id)
            if transaction is None or (
                account_id is not None and transaction.account_id != account_id
            ):
                raise NotFoundError(f"Transaction not found: {transaction_id}")

            await self.store.delete_transaction(transaction_id)
            balance_cents = await self.store.increment_balance(
                transaction.account_id, -to_cents(transaction.amount)
            )
            if balance_cents is None:
                raise NotFoundError(f"Account not found: {transaction.account_id}")

        new_balance = from_cents(balance_cents)
        logger.info(
            f"Transaction reversed: {transaction_id} "
            f"account={transaction.account_id} balance={new_balance}"
        )
        return new_balance

    # =========================================================================
    # 재계산 (Reconciliation)
    # =========================================================================

    async def recalculate_balance(self, user_id: str, account_id: str) -> Decimal:
        """전체 거래 합계로 잔액 덮어쓰기

        증분 경로와 독립적인 복구 작업. 연속 호출해도 결과 동일.

        Returns:
            재계산된 잔액
        """
        async with atomic(self.db):
            account = await self._get_owned_account(user_id, account_id)
            total_cents = await self.store.sum_transactions(account_id)
            await self.store.set_balance(account_id, total_cents)

        balance = from_cents(total_cents)
        if account.balance != balance:
            logger.warning(
                f"Balance drift corrected: {account_id} {account.balance} -> {balance}"
            )
        return balance

    async def rebuild_balance_snapshots(self, user_id: str, account_id: str) -> int:
        """balance_after 스냅샷 재기록

        거래일 순으로 누적 합계를 다시 계산하여 모든 거래의
        balance_after를 갱신 (거래 삭제 후 어긋난 이력 복구).

        Returns:
            갱신된 거래 수
        """
        async with atomic(self.db):
            await self._get_owned_account(user_id, account_id)
            count = await self.store.restamp_balance_after(account_id)

        logger.info(f"Balance snapshots rebuilt: {account_id} ({count} transactions)")
        return count

    async def find_balance_drift(self, user_id: str | None = None) -> list[BalanceDrift]:
        """잔액 불변식이 깨진 계좌 목록

        Args:
            user_id: 특정 사용자로 한정 (None이면 전체, 관리 스크립트용)
        """
        if user_id is not None:
            user_id = require_user(user_id)
        async with translate_db_errors():
            return await self.store.find_balance_drift(user_id)

    # =========================================================================
    # 조회
    # =========================================================================

    async def list_transactions(
        self,
        user_id: str,
        account_id: str,
        start: datetime | date | str | None = None,
        end: datetime | date | str | None = None,
        transaction_type: TransactionType | str | None = None,
        limit: int | None = Defaults.PAGE_LIMIT,
        offset: int = 0,
    ) -> TransactionPage:
        """계좌 거래 목록 (거래일 내림차순, 페이지)

        Args:
            start: 시작 시각 (포함)
            end: 종료 시각 (포함)
            transaction_type: 유형 필터
            limit: 페이지 크기 (None이면 전체)
            offset: 시작 위치

        Returns:
            TransactionPage (transactions, total, limit, offset)
        """
        start_ts = parse_timestamp(start, "start")
        end_ts = parse_timestamp(end, "end")
        if start_ts is not None and end_ts is not None and start_ts > end_ts:
            raise ValidationError("start must not be after end")

        type_value = (
            parse_transaction_type(transaction_type).value
            if transaction_type is not None
            else None
        )
        limit, offset = validate_page(limit, offset)

        async with translate_db_errors():
            await self._get_owned_account(user_id, account_id)
            transactions, total = await self.store.query_transactions(
                user_id=user_id,
                account_id=account_id,
                start=start_ts,
                end=end_ts,
                transaction_type=type_value,
                limit=limit,
                offset=offset,
            )

        return TransactionPage(
            transactions=transactions,
            total=total,
            limit=limit,
            offset=offset,
        )

    async def recent_transactions(
        self,
        user_id: str,
        account_id: str,
        limit: int = Defaults.RECENT_TRANSACTIONS,
    ) -> list[LedgerTransaction]:
        """최근 거래 N건"""
        page = await self.list_transactions(user_id, account_id, limit=limit)
        return page.transactions

    async def net_worth(self, user_id: str, include_archived: bool = False) -> Decimal:
        """순자산 (조회 시점의 계좌 잔액 합계)

        Args:
            include_archived: 보관된 계좌 포함 여부
        """
        user_id = require_user(user_id)
        async with translate_db_errors():
            total_cents = await self.store.sum_balances(user_id, include_archived)
        return from_cents(total_cents)

    async def net_worth_history(
        self,
        user_id: str,
        days: int = Defaults.NET_WORTH_HISTORY_DAYS,
    ) -> NetWorthHistory:
        """순자산 히스토리 (차트용)

        현재 순자산(보관 계좌 포함)과 최근 days일 거래의
        balance_after 스냅샷을 오름차순으로 반환.
        거래가 삭제된 적이 있으면 스냅샷이 실제 누적값과 다를 수 있음.
        """
        user_id = require_user(user_id)
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise ValidationError(f"days must be a positive integer: {days!r}")

        since = now_utc() - timedelta(days=days)

        async with translate_db_errors():
            accounts = await self.store.get_accounts(user_id, include_archived=True)
            rows = await self.store.get_user_transactions_since(user_id, since)

        history = [
            HistoryPoint(
                date=tx.transaction_date,
                amount=tx.amount,
                account_id=tx.account_id,
                account_name=account_name,
                account_type=account_type,
                balance_after=tx.balance_after,
            )
            for tx, account_name, account_type in rows
        ]

        return NetWorthHistory(
            current_net_worth=sum((a.balance for a in accounts), Decimal("0.00")),
            accounts=accounts,
            history=history,
        )

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    async def _get_owned_account(self, user_id: str, account_id: str) -> Account:
        """소유권 확인 후 계좌 반환"""
        user_id = require_user(user_id)
        account = await self.store.get_account(user_id, account_id)
        if account is None:
            raise NotFoundError(f"Account not found: {account_id}")
        return account


# =============================================================================
# 저장소 예외 변환
# =============================================================================


def translate_db_error(e: sqlite3.Error) -> LedgerError:
    """sqlite3 예외 → Ledger 예외

    busy_timeout 이후에도 락을 얻지 못하면 ConflictError (재시도 가능),
    그 외는 PersistenceError.
    """
    message = str(e).lower()
    if isinstance(e, sqlite3.OperationalError) and (
        "locked" in message or "busy" in message
    ):
        return ConflictError(f"Concurrent ledger update, retry the operation: {e}")
    return PersistenceError(f"Ledger store failure: {e}")


@asynccontextmanager
async def translate_db_errors() -> AsyncIterator[None]:
    """블록 안의 sqlite3 예외를 Ledger 예외로 변환"""
    try:
        yield
    except sqlite3.Error as e:
        raise translate_db_error(e) from e


@asynccontextmanager
async def atomic(db: SQLiteAdapter) -> AsyncIterator[None]:
    """원자적 쓰기 단위 (실패 시 전체 롤백)"""
    async with translate_db_errors():
        async with db.transaction():
            yield
