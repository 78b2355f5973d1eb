"""
유지보수 스크립트 통합 테스트

init_db / reconcile_balances / backup 의 main 함수를 임시 DB로 실행
"""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.ledger.engine import LedgerEngine
from scripts import backup, init_db, reconcile_balances

USER = "user-1"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "ledger.db"


class TestInitDb:
    @pytest.mark.asyncio
    async def test_creates_schema(self, db_path: Path) -> None:
        assert await init_db.main(db_path) == 0
        # 재실행도 성공
        assert await init_db.main(db_path) == 0

        async with SQLiteAdapter(db_path) as db:
            assert await db.table_exists("accounts") is True
            assert await db.table_exists("transactions") is True


class TestReconcileBalances:
    """reconcile_balances 스크립트 테스트"""

    @pytest.mark.asyncio
    async def test_detect_and_fix(self, db_path: Path) -> None:
        await init_db.main(db_path)
        async with SQLiteAdapter(db_path) as db:
            engine = LedgerEngine(db)
            account = await engine.create_account(USER, "Drift", "Cash", opening_balance=10)
            await db.execute(
                "UPDATE accounts SET balance_cents = 0 WHERE account_id = ?",
                (account.account_id,),
            )

        # 점검만 → 종료 코드 1
        assert await reconcile_balances.main(db_path, None, fix=False) == 1
        # 복구
        assert await reconcile_balances.main(db_path, USER, fix=True) == 0
        # 재점검 → 불일치 없음
        assert await reconcile_balances.main(db_path, None, fix=False) == 0

        async with SQLiteAdapter(db_path) as db:
            restored = await LedgerEngine(db).get_account(USER, account.account_id)
        assert restored.balance == Decimal("10.00")


class TestBackupScript:
    """backup 스크립트 테스트"""

    @pytest.mark.asyncio
    async def test_export_and_import(self, db_path: Path, tmp_path: Path) -> None:
        await init_db.main(db_path)
        async with SQLiteAdapter(db_path) as db:
            await LedgerEngine(db).create_account(USER, "Savings", "Savings", opening_balance=250)

        output = tmp_path / "out" / "backup.json"
        parser = backup.build_parser()

        args = parser.parse_args(["export", "--user", USER, "--output", str(output)])
        assert await backup.main(args, db_path) == 0
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["accounts"][0]["balance"] == "250.00"

        args = parser.parse_args(["import", "--user", "user-2", "--input", str(output)])
        assert await backup.main(args, db_path) == 0

        async with SQLiteAdapter(db_path) as db:
            assert await LedgerEngine(db).net_worth("user-2") == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_import_uses_configured_currency(
        self, db_path: Path, tmp_path: Path, temp_settings_file_production: Path
    ) -> None:
        """settings.yaml의 ledger.default_currency가 가져오기 기본 통화"""
        settings = get_settings(temp_settings_file_production)
        await init_db.main(db_path)
        source = tmp_path / "no_currency.json"
        source.write_text(
            json.dumps({
                "exportVersion": "1.0",
                "accounts": [
                    {"name": "Euro Cash", "type": "Cash", "transactions": [
                        {"type": "deposit", "amount": "12.00"},
                    ]},
                ],
            }),
            encoding="utf-8",
        )

        args = backup.build_parser().parse_args(
            ["import", "--user", USER, "--input", str(source)]
        )
        assert await backup.main(args, db_path, settings.default_currency) == 0

        async with SQLiteAdapter(db_path) as db:
            [account] = await LedgerEngine(db).list_accounts(USER)
        assert settings.default_currency == "EUR"
        assert account.currency == "EUR"
        assert account.balance == Decimal("12.00")

    @pytest.mark.asyncio
    async def test_export_csv(self, db_path: Path, tmp_path: Path) -> None:
        await init_db.main(db_path)
        async with SQLiteAdapter(db_path) as db:
            await LedgerEngine(db).create_account(USER, "Cash", "Cash", opening_balance=5)

        output = tmp_path / "tx.csv"
        args = backup.build_parser().parse_args(
            ["export", "--user", USER, "--format", "csv", "--output", str(output)]
        )

        assert await backup.main(args, db_path) == 0
        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "Type,Account,Date,Transaction,Amount,Category,Balance After"
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_invalid_backup_file(self, db_path: Path, tmp_path: Path) -> None:
        """형식 오류 → 종료 코드 1"""
        await init_db.main(db_path)
        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        no_version = tmp_path / "no_version.json"
        no_version.write_text(json.dumps({"accounts": []}), encoding="utf-8")

        parser = backup.build_parser()
        for path in (broken, no_version):
            args = parser.parse_args(["import", "--user", USER, "--input", str(path)])
            assert await backup.main(args, db_path) == 1
