"""
Ledger 백업 (내보내기 / 가져오기)

- export_backup: 계좌와 거래 전체를 JSON 직렬화 가능한 dict로 변환
- export_transactions_csv: 거래 목록 CSV
- import_backup: 백업 문서를 검증 후 하나의 트랜잭션으로 복원

가져오기는 거래를 일반 적용 경로와 같은 부호 규칙으로 저장한 뒤
계좌별 잔액과 balance_after를 거래 합계로 다시 계산하여
복원 직후에도 잔액 불변식이 성립함.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from core.constants import Defaults, Limits
from core.errors import NotFoundError, ValidationError
from core.ledger.engine import atomic, translate_db_errors
from core.ledger.store import LedgerStore
from core.ledger.types import AccountType, TransactionType, signed_amount
from core.ledger.validation import parse_timestamp, require_user, validate_currency
from core.utils.money import parse_amount, to_cents
from core.utils.timezone import ensure_utc, now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

CSV_HEADER = [
    "Type",
    "Account",
    "Date",
    "Transaction",
    "Amount",
    "Category",
    "Balance After",
]


# =============================================================================
# 백업 문서 모델
# =============================================================================


class BackupTransaction(BaseModel):
    """백업 문서의 거래 (camelCase / snake_case 모두 허용)"""

    transaction_type: TransactionType = Field(
        ...,
        validation_alias=AliasChoices("type", "transactionType", "transaction_type"),
        description="거래 유형",
    )
    amount: Decimal = Field(..., description="금액 (부호는 유형으로 재결정)")
    note: str | None = Field(default=None, max_length=Limits.NOTE_MAX, description="메모")
    category: str | None = Field(
        default=None, max_length=Limits.CATEGORY_MAX, description="분류"
    )
    transaction_date: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("transactionDate", "transaction_date", "date"),
        description="거래 시각 (없으면 가져온 시각)",
    )

    model_config = {"extra": "ignore", "str_strip_whitespace": True}

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Decimal:
        try:
            return parse_amount(value, "amount")
        except ValidationError as e:
            raise ValueError(str(e)) from e


class BackupAccount(BaseModel):
    """백업 문서의 계좌

    잔액은 가져오지 않음 (거래 합계로 재계산).
    """

    name: str = Field(..., min_length=1, max_length=Limits.ACCOUNT_NAME_MAX)
    account_type: AccountType = Field(
        ...,
        validation_alias=AliasChoices("type", "accountType", "account_type"),
    )
    currency: str | None = Field(default=None, description="통화 (없으면 기본 통화)")
    institution: str | None = Field(default=None, max_length=Limits.INSTITUTION_MAX)
    notes: str | None = None
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    is_archived: bool = Field(
        default=False,
        validation_alias=AliasChoices("isArchived", "is_archived"),
    )
    display_order: int = Field(
        default=Defaults.DISPLAY_ORDER,
        validation_alias=AliasChoices("displayOrder", "display_order"),
    )
    transactions: list[BackupTransaction] = Field(default_factory=list)

    model_config = {"extra": "ignore", "str_strip_whitespace": True}

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Any) -> str | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            return validate_currency(value)
        except ValidationError as e:
            raise ValueError(str(e)) from e

    @field_validator("institution", "notes", "color", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class BackupDocument(BaseModel):
    """백업 문서 (exportVersion 필수)"""

    export_version: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("exportVersion", "export_version"),
    )
    accounts: list[BackupAccount] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


@dataclass(frozen=True)
class ImportResult:
    """가져오기 결과"""

    accounts: int
    transactions: int


# =============================================================================
# 서비스
# =============================================================================


class BackupService:
    """계좌/거래 백업 서비스

    Args:
        db: 연결된 SQLiteAdapter
        default_currency: 백업 문서에 통화가 없는 계좌에 사용할 통화
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        default_currency: str = Defaults.CURRENCY,
    ):
        self.db = db
        self.store = LedgerStore(db)
        self.default_currency = validate_currency(default_currency)

    async def export_backup(self, user_id: str) -> dict[str, Any]:
        """사용자 계좌/거래 전체 내보내기 (보관 계좌 포함)

        Returns:
            {"exportVersion", "exportDate", "accounts": [{..., "transactions": [...]}]}
        """
        user_id = require_user(user_id)

        async with translate_db_errors():
            accounts = await self.store.get_accounts(user_id, include_archived=True)
            exported = []
            for account in accounts:
                transactions = await self.store.get_transactions_chronological(
                    account.account_id
                )
                data = account.to_dict()
                data["transactions"] = [tx.to_dict() for tx in transactions]
                exported.append(data)

        logger.info(f"Backup exported: {user_id} ({len(exported)} accounts)")
        return {
            "exportVersion": EXPORT_VERSION,
            "exportDate": now_utc().isoformat(),
            "accounts": exported,
        }

    async def export_transactions_csv(
        self,
        user_id: str,
        account_id: str | None = None,
        start: datetime | date | str | None = None,
        end: datetime | date | str | None = None,
    ) -> str:
        """거래 CSV 내보내기 (거래일 내림차순)

        Args:
            account_id: 특정 계좌로 한정
            start: 시작 시각 (포함)
            end: 종료 시각 (포함)
        """
        user_id = require_user(user_id)
        start_ts = parse_timestamp(start, "start")
        end_ts = parse_timestamp(end, "end")

        async with translate_db_errors():
            accounts = {
                a.account_id: a
                for a in await self.store.get_accounts(user_id, include_archived=True)
            }
            if account_id is not None and account_id not in accounts:
                raise NotFoundError(f"Account not found: {account_id}")

            transactions, _ = await self.store.query_transactions(
                user_id=user_id,
                account_id=account_id,
                start=start_ts,
                end=end_ts,
            )

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for tx in transactions:
            account = accounts[tx.account_id]
            writer.writerow([
                account.account_type.value,
                account.name,
                tx.transaction_date.isoformat(),
                tx.note or tx.transaction_type.value,
                str(tx.amount),
                tx.category or "",
                str(tx.balance_after) if tx.balance_after is not None else "",
            ])

        return buffer.getvalue()

    async def import_backup(self, user_id: str, document: Any) -> ImportResult:
        """백업 문서 가져오기

        문서 전체를 먼저 검증하고, 모든 계좌/거래를 하나의 트랜잭션으로 생성.
        계좌는 항상 새 ID로 생성되며 잔액은 거래 합계로 재계산.

        Raises:
            ValidationError: 문서 형식이 잘못된 경우 (아무것도 저장되지 않음)
        """
        user_id = require_user(user_id)

        if not isinstance(document, dict):
            raise ValidationError("Invalid backup file format")
        try:
            backup = BackupDocument.model_validate(document)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid backup file format: {e}") from e

        imported_at = now_utc()
        account_count = 0
        transaction_count = 0

        async with atomic(self.db):
            for account_data in backup.accounts:
                account_id = str(uuid4())
                await self.store.insert_account(
                    account_id=account_id,
                    user_id=user_id,
                    name=account_data.name,
                    account_type=account_data.account_type.value,
                    currency=account_data.currency or self.default_currency,
                    institution=account_data.institution,
                    notes=account_data.notes,
                    color=account_data.color or Defaults.ACCOUNT_COLOR,
                    display_order=account_data.display_order,
                )
                if account_data.is_archived:
                    await self.store.update_account_fields(account_id, {"is_archived": 1})
                account_count += 1

                for tx_data in account_data.transactions:
                    when = (
                        ensure_utc(tx_data.transaction_date)
                        if tx_data.transaction_date is not None
                        else imported_at
                    )
                    await self.store.insert_transaction(
                        transaction_id=str(uuid4()),
                        account_id=account_id,
                        user_id=user_id,
                        transaction_type=tx_data.transaction_type.value,
                        amount_cents=to_cents(
                            signed_amount(tx_data.transaction_type, tx_data.amount)
                        ),
                        note=tx_data.note or None,
                        category=tx_data.category or None,
                        transaction_date=when,
                    )
                    transaction_count += 1

                total_cents = await self.store.sum_transactions(account_id)
                await self.store.set_balance(account_id, total_cents)
                await self.store.restamp_balance_after(account_id)

        logger.info(
            f"Backup imported: {user_id} "
            f"({account_count} accounts, {transaction_count} transactions, "
            f"version={backup.export_version})"
        )
        return ImportResult(accounts=account_count, transactions=transaction_count)
