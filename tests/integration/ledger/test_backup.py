"""BackupService 통합 테스트"""

import csv
import io
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import NotFoundError, ValidationError
from core.ledger.backup import CSV_HEADER, EXPORT_VERSION, BackupService
from core.ledger.engine import LedgerEngine
from core.ledger.types import TransactionType

USER = "user-1"
RESTORED_USER = "user-restored"


def day(n: int) -> datetime:
    return datetime(2026, 3, n, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(db: SQLiteAdapter) -> BackupService:
    return BackupService(db)


async def seed(engine: LedgerEngine) -> tuple[str, str]:
    """계좌 2개 + 거래 몇 건 생성"""
    checking = await engine.create_account(USER, "Checking", "Cash", opening_balance=100)
    card = await engine.create_account(USER, "Card", "Debt")
    await engine.apply_transaction(
        USER, checking.account_id, "expense", "12.50", note="Books", category="Education",
        transaction_date=day(2),
    )
    await engine.apply_transaction(
        USER, card.account_id, "withdrawal", 40, transaction_date=day(3)
    )
    return checking.account_id, card.account_id


class TestExportBackup:
    """JSON 백업 내보내기"""

    @pytest.mark.asyncio
    async def test_document_shape(self, engine: LedgerEngine, service: BackupService) -> None:
        checking_id, _ = await seed(engine)
        await engine.archive_account(USER, checking_id)

        document = await service.export_backup(USER)

        assert document["exportVersion"] == EXPORT_VERSION
        assert "exportDate" in document
        # 보관 계좌도 포함
        assert len(document["accounts"]) == 2

        checking = next(a for a in document["accounts"] if a["id"] == checking_id)
        assert checking["balance"] == "87.50"
        assert checking["isArchived"] is True
        assert sorted(tx["amount"] for tx in checking["transactions"]) == ["-12.50", "100.00"]
        books = next(tx for tx in checking["transactions"] if tx["note"] == "Books")
        assert books["category"] == "Education"
        assert books["type"] == "expense"

        # JSON 직렬화 가능
        json.dumps(document)

    @pytest.mark.asyncio
    async def test_empty(self, service: BackupService) -> None:
        document = await service.export_backup("nobody")

        assert document["accounts"] == []


class TestExportCsv:
    """거래 CSV 내보내기"""

    @pytest.mark.asyncio
    async def test_rows(self, engine: LedgerEngine, service: BackupService) -> None:
        checking_id, card_id = await seed(engine)

        content = await service.export_transactions_csv(
            USER, start=day(1), end=day(31)
        )
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == CSV_HEADER
        # 거래일 내림차순 (개시 잔액 거래는 현재 시각이라 기간 밖)
        assert [r[1] for r in rows[1:]] == ["Card", "Checking"]
        card_row, checking_row = rows[1], rows[2]
        assert card_row[0] == "Debt"
        assert card_row[3] == "withdrawal"
        assert card_row[4] == "-40.00"
        assert checking_row[3] == "Books"
        assert checking_row[5] == "Education"
        assert checking_row[6] == "87.50"

    @pytest.mark.asyncio
    async def test_account_filter(self, engine: LedgerEngine, service: BackupService) -> None:
        checking_id, _ = await seed(engine)

        content = await service.export_transactions_csv(USER, account_id=checking_id)
        rows = list(csv.reader(io.StringIO(content)))

        assert len(rows) == 3
        assert {r[1] for r in rows[1:]} == {"Checking"}

    @pytest.mark.asyncio
    async def test_quotes_are_escaped(self, engine: LedgerEngine, service: BackupService) -> None:
        account = await engine.create_account(USER, 'My "Main", Account', "Cash")
        await engine.apply_transaction(USER, account.account_id, "deposit", 1, note='say "hi"')

        rows = list(csv.reader(io.StringIO(await service.export_transactions_csv(USER))))

        assert rows[1][1] == 'My "Main", Account'
        assert rows[1][3] == 'say "hi"'

    @pytest.mark.asyncio
    async def test_unknown_account(self, service: BackupService) -> None:
        with pytest.raises(NotFoundError):
            await service.export_transactions_csv(USER, account_id="missing")


class TestImportBackup:
    """JSON 백업 가져오기"""

    @pytest.mark.asyncio
    async def test_round_trip(self, engine: LedgerEngine, service: BackupService) -> None:
        """내보낸 문서를 다른 사용자로 복원 → 잔액/거래 수 동일"""
        await seed(engine)
        document = json.loads(json.dumps(await service.export_backup(USER)))

        result = await service.import_backup(RESTORED_USER, document)

        assert result.accounts == 2
        assert result.transactions == 3

        restored = {a.name: a for a in await engine.list_accounts(RESTORED_USER)}
        assert restored["Checking"].balance == Decimal("87.50")
        assert restored["Card"].balance == Decimal("-40.00")
        assert await engine.net_worth(RESTORED_USER) == await engine.net_worth(USER)
        assert await engine.find_balance_drift(RESTORED_USER) == []

    @pytest.mark.asyncio
    async def test_sign_normalized_and_snapshots_rebuilt(
        self, engine: LedgerEngine, service: BackupService
    ) -> None:
        """부호는 유형으로 재결정, balance_after는 거래일 순 누적값"""
        document = {
            "exportVersion": "1.0",
            "accounts": [
                {
                    "name": "Imported",
                    "type": "Savings",
                    "currency": "eur",
                    "balance": "123456.00",
                    "transactions": [
                        {"type": "withdrawal", "amount": "25", "transactionDate": "2026-03-05T00:00:00Z"},
                        {"type": "deposit", "amount": -100, "transaction_date": "2026-03-01T00:00:00Z"},
                        {"type": "interest", "amount": 0.5, "date": "2026-03-10T00:00:00+00:00"},
                    ],
                }
            ],
        }

        result = await service.import_backup(USER, document)

        assert result.transactions == 3
        [account] = await engine.list_accounts(USER)
        # 문서의 balance는 무시하고 거래 합계로 계산
        assert account.balance == Decimal("75.50")
        assert account.currency == "EUR"

        page = await engine.list_transactions(USER, account.account_id)
        chronological = list(reversed(page.transactions))
        assert [tx.amount for tx in chronological] == [
            Decimal("100.00"),
            Decimal("-25.00"),
            Decimal("0.50"),
        ]
        assert [tx.balance_after for tx in chronological] == [
            Decimal("100.00"),
            Decimal("75.00"),
            Decimal("75.50"),
        ]
        assert chronological[0].transaction_type is TransactionType.DEPOSIT

    @pytest.mark.asyncio
    async def test_snake_case_fields(self, engine: LedgerEngine, service: BackupService) -> None:
        document = {
            "export_version": "1.0",
            "accounts": [
                {
                    "name": "Snake",
                    "account_type": "Crypto",
                    "is_archived": True,
                    "display_order": 3,
                    "color": "",
                    "transactions": [{"transaction_type": "deposit", "amount": "1"}],
                }
            ],
        }

        await service.import_backup(USER, document)

        [account] = await engine.list_accounts(USER, include_archived=True)
        assert account.is_archived is True
        assert account.display_order == 3
        assert account.color == "#4A6C6F"
        assert account.balance == Decimal("1.00")

    @pytest.mark.asyncio
    async def test_missing_currency_uses_default(
        self, engine: LedgerEngine, db: SQLiteAdapter
    ) -> None:
        """통화가 없는 계좌는 서비스 기본 통화, 명시된 통화는 그대로"""
        service = BackupService(db, default_currency="eur")
        document = {
            "exportVersion": "1.0",
            "accounts": [
                {"name": "Plain", "type": "Cash"},
                {"name": "Blank", "type": "Cash", "currency": ""},
                {"name": "Yen", "type": "Cash", "currency": "jpy"},
            ],
        }

        await service.import_backup(USER, document)

        currencies = {a.name: a.currency for a in await engine.list_accounts(USER)}
        assert currencies == {"Plain": "EUR", "Blank": "EUR", "Yen": "JPY"}

    @pytest.mark.parametrize(
        "document",
        [
            None,
            {"exportVersion": "1.0", "accounts": [{"name": "Bad", "type": "Cash", "currency": "EURO"}]},
            [],
            {},
            {"accounts": []},
            {"exportVersion": "1.0", "accounts": [{"name": "No type"}]},
            {"exportVersion": "1.0", "accounts": [{"name": "Bad", "type": "Stocks"}]},
            {
                "exportVersion": "1.0",
                "accounts": [
                    {"name": "Bad tx", "type": "Cash", "transactions": [{"type": "refund", "amount": 1}]}
                ],
            },
            {
                "exportVersion": "1.0",
                "accounts": [
                    {"name": "Bad amount", "type": "Cash", "transactions": [{"type": "deposit", "amount": "abc"}]}
                ],
            },
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_document(
        self, engine: LedgerEngine, service: BackupService, document: object
    ) -> None:
        with pytest.raises(ValidationError):
            await service.import_backup(USER, document)

        assert await engine.list_accounts(USER, include_archived=True) == []

    @pytest.mark.asyncio
    async def test_all_or_nothing(
        self,
        engine: LedgerEngine,
        service: BackupService,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """두 번째 계좌 저장 중 실패 → 첫 번째 계좌도 롤백"""
        document = {
            "exportVersion": "1.0",
            "accounts": [
                {"name": "First", "type": "Cash", "transactions": [{"type": "deposit", "amount": 1}]},
                {"name": "Second", "type": "Cash"},
            ],
        }
        original = service.store.insert_account
        calls = 0

        async def flaky(**kwargs: object) -> None:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise RuntimeError("의도적 에러")
            await original(**kwargs)

        monkeypatch.setattr(service.store, "insert_account", flaky)

        with pytest.raises(RuntimeError):
            await service.import_backup(USER, document)

        assert await engine.list_accounts(USER, include_archived=True) == []
