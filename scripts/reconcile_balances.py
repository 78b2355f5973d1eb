"""
잔액 정합성 점검

모든 계좌의 저장된 잔액과 거래 합계를 비교.
--fix 지정 시 어긋난 계좌의 잔액과 balance_after 스냅샷을 재계산.

사용법:
    python -m scripts.reconcile_balances
    python -m scripts.reconcile_balances --user <user_id> --fix

종료 코드:
    0: 불일치 없음 (또는 --fix로 모두 복구)
    1: 불일치 발견 (--fix 미지정)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.constants import Defaults
from core.ledger.engine import LedgerEngine
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def main(
    db_path: Path,
    user_id: str | None,
    fix: bool,
    default_currency: str = Defaults.CURRENCY,
) -> int:
    async with SQLiteAdapter(db_path) as db:
        engine = LedgerEngine(db, default_currency=default_currency)
        drifts = await engine.find_balance_drift(user_id)

        if not drifts:
            logger.info("잔액 불일치 없음")
            return 0

        for drift in drifts:
            logger.warning(
                f"잔액 불일치: {drift.account_id} ({drift.name}) "
                f"user={drift.user_id} stored={drift.stored_balance} "
                f"computed={drift.computed_balance} diff={drift.difference}"
            )

        if not fix:
            logger.warning(f"불일치 계좌 {len(drifts)}개 (--fix로 복구)")
            return 1

        for drift in drifts:
            balance = await engine.recalculate_balance(drift.user_id, drift.account_id)
            await engine.rebuild_balance_snapshots(drift.user_id, drift.account_id)
            logger.info(f"복구 완료: {drift.account_id} -> {balance}")

    logger.info(f"불일치 계좌 {len(drifts)}개 복구 완료")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="잔액 정합성 점검")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="settings.yaml 경로 (기본: config/settings.yaml)",
    )
    parser.add_argument("--db", type=Path, default=None, help="DB 파일 경로")
    parser.add_argument("--user", default=None, help="특정 사용자만 점검")
    parser.add_argument(
        "--fix",
        action="store_true",
        help="불일치 계좌 잔액을 거래 합계로 재계산",
    )
    args = parser.parse_args()

    settings = get_settings(args.config)
    setup_logging("reconcile", console_level=settings.log_level)

    sys.exit(
        asyncio.run(
            main(
                args.db or settings.db_path,
                args.user,
                args.fix,
                settings.default_currency,
            )
        )
    )
