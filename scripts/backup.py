"""
사용자 원장 백업 / 복원

사용법:
    python -m scripts.backup export --user <user_id> --output backup.json
    python -m scripts.backup export --user <user_id> --format csv --output tx.csv
    python -m scripts.backup import --user <user_id> --input backup.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.constants import Defaults
from core.errors import LedgerError
from core.ledger.backup import BackupService
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def export_command(
    args: argparse.Namespace, db_path: Path, default_currency: str
) -> int:
    async with SQLiteAdapter(db_path) as db:
        service = BackupService(db, default_currency=default_currency)
        if args.format == "csv":
            content = await service.export_transactions_csv(
                args.user,
                account_id=args.account,
                start=args.start,
                end=args.end,
            )
        else:
            document = await service.export_backup(args.user)
            content = json.dumps(document, ensure_ascii=False, indent=2)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(content, encoding="utf-8")
    logger.info(f"내보내기 완료: {args.output}")
    return 0


async def import_command(
    args: argparse.Namespace, db_path: Path, default_currency: str
) -> int:
    try:
        document = json.loads(args.input.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error(f"백업 파일 파싱 실패: {args.input} ({e})")
        return 1

    async with SQLiteAdapter(db_path) as db:
        service = BackupService(db, default_currency=default_currency)
        result = await service.import_backup(args.user, document)

    logger.info(
        f"가져오기 완료: 계좌 {result.accounts}개, 거래 {result.transactions}건"
    )
    return 0


async def main(
    args: argparse.Namespace,
    db_path: Path,
    default_currency: str = Defaults.CURRENCY,
) -> int:
    try:
        if args.command == "export":
            return await export_command(args, db_path, default_currency)
        return await import_command(args, db_path, default_currency)
    except LedgerError as e:
        logger.error(f"{args.command} 실패: {type(e).__name__}: {e}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="원장 백업 / 복원")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="settings.yaml 경로 (기본: config/settings.yaml)",
    )
    parser.add_argument("--db", type=Path, default=None, help="DB 파일 경로")

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="JSON 백업 또는 거래 CSV")
    export_parser.add_argument("--user", required=True, help="사용자 ID")
    export_parser.add_argument("--format", choices=["json", "csv"], default="json")
    export_parser.add_argument("--account", default=None, help="CSV: 특정 계좌만")
    export_parser.add_argument("--start", default=None, help="CSV: 시작 시각 (ISO)")
    export_parser.add_argument("--end", default=None, help="CSV: 종료 시각 (ISO)")
    export_parser.add_argument(
        "--output", type=Path, required=True, help="출력 파일"
    )

    import_parser = subparsers.add_parser("import", help="JSON 백업 가져오기")
    import_parser.add_argument("--user", required=True, help="사용자 ID")
    import_parser.add_argument("--input", type=Path, required=True, help="백업 파일")

    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()

    settings = get_settings(args.config)
    setup_logging("backup", console_level=settings.log_level)

    sys.exit(
        asyncio.run(
            main(args, args.db or settings.db_path, settings.default_currency)
        )
    )
