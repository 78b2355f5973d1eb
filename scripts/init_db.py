"""
Ledger DB 초기화

settings.yaml의 DB 경로에 계좌/거래 스키마 생성.
이미 존재하면 건너뜀.

사용법:
    python -m scripts.init_db
    python -m scripts.init_db --db data/claritynest_test.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.ledger.schema import init_ledger_schema
from core.logging import setup_logging

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("accounts", "transactions")


async def verify_schema(db: SQLiteAdapter) -> bool:
    """필수 테이블 존재 확인"""
    for table in REQUIRED_TABLES:
        if not await db.table_exists(table):
            logger.error(f"테이블 누락: {table}")
            return False
        logger.info(f"테이블 확인: {table}")
    return True


async def main(db_path: Path) -> int:
    """스키마 생성 및 검증

    Returns:
        종료 코드 (0: 성공)
    """
    logger.info(f"DB 초기화 시작: {db_path}")

    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)

        if not await verify_schema(db):
            logger.error("스키마 검증 실패")
            return 1

    logger.info("DB 초기화 완료")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger DB 초기화")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="settings.yaml 경로 (기본: config/settings.yaml)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 파일 경로 (기본: 설정의 database.path)",
    )
    args = parser.parse_args()

    settings = get_settings(args.config)
    setup_logging("init_db", console_level=settings.log_level)

    sys.exit(asyncio.run(main(args.db or settings.db_path)))
