"""Ledger 통합 테스트 fixture"""

from pathlib import Path

import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.engine import LedgerEngine
from core.ledger.schema import init_ledger_schema


@pytest_asyncio.fixture
async def db_path(tmp_path: Path) -> Path:
    """스키마가 준비된 임시 DB 파일"""
    path = tmp_path / "test_ledger.db"
    async with SQLiteAdapter(path) as adapter:
        await init_ledger_schema(adapter)
    return path


@pytest_asyncio.fixture
async def db(db_path: Path) -> SQLiteAdapter:
    """테스트용 임시 DB"""
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def engine(db: SQLiteAdapter) -> LedgerEngine:
    return LedgerEngine(db)
