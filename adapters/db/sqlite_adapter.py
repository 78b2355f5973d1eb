"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
여러 프로세스가 같은 DB 파일에 동시에 접근 가능하도록 설정.

연결은 autocommit 모드로 열고, 쓰기 단위는 transaction()이
BEGIN IMMEDIATE ~ COMMIT 으로 명시적으로 감쌈.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)

# 쓰기 락 대기 시간 (밀리초)
BUSY_TIMEOUT_MS = 30000


async def create_connection(db_path: Path | str) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)

    Returns:
        aiosqlite 연결 객체
    """
    db_path_str = str(db_path)

    if db_path_str != ":memory:":
        # 디렉토리가 없으면 생성
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    # isolation_level=None: 암묵적 BEGIN 없이 transaction()에서 직접 관리
    conn = await aiosqlite.connect(db_path_str, isolation_level=None)

    # WAL 모드 설정
    await conn.execute("PRAGMA journal_mode=WAL")

    # 동시 접근 설정
    await conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")

    # 외래 키 제약 활성화 (계좌 삭제 시 거래 CASCADE)
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info("SQLite 연결 생성", extra={"db_path": db_path_str})

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    연결 하나를 코루틴들이 공유하므로 모든 SQL은 같은 asyncio.Lock을 거침.
    트랜잭션을 연 태스크만 락 없이 실행하고, 다른 태스크의 조회는
    커밋/롤백이 끝날 때까지 대기하여 진행 중인 쓰기를 보지 않음.
    다른 연결(다른 프로세스 포함)과는 BEGIN IMMEDIATE의 쓰기 락으로 직렬화됨.

    Args:
        db_path: DB 파일 경로

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """진행 중인 트랜잭션 여부"""
        return self._conn is not None and self._conn.in_transaction

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path)

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    @asynccontextmanager
    async def _access(self) -> AsyncIterator[aiosqlite.Connection]:
        """연결 사용 권한 (트랜잭션 소유 태스크는 락 재획득 없이 통과)"""
        conn = self._connection()
        if self._owner is not None and self._owner is asyncio.current_task():
            yield conn
            return

        async with self._lock:
            yield self._connection()

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        async with self._access() as conn:
            if parameters:
                return await conn.execute(sql, parameters)
            return await conn.execute(sql)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        async with self._access() as conn:
            return await conn.executemany(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        async with self._access() as conn:
            cursor = await conn.execute(sql, parameters or ())
            return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        async with self._access() as conn:
            cursor = await conn.execute(sql, parameters or ())
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """쓰기 트랜잭션 컨텍스트 매니저

        BEGIN IMMEDIATE로 시작하여 DB 쓰기 락을 먼저 확보.
        성공 시 자동 커밋, 예외(취소 포함) 시 자동 롤백.
        블록이 끝날 때까지 다른 태스크의 SQL은 대기.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        self._connection()

        async with self._lock:
            conn = self._connection()
            self._owner = asyncio.current_task()
            try:
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                    await conn.commit()
                except BaseException:
                    await conn.rollback()
                    raise
            finally:
                self._owner = None

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def get_table_info(self, table_name: str) -> list[dict[str, Any]]:
        """테이블 정보 조회"""
        rows = await self.fetchall(f"PRAGMA table_info({table_name})")

        columns = []
        for row in rows:
            columns.append({
                "cid": row[0],
                "name": row[1],
                "type": row[2],
                "notnull": bool(row[3]),
                "default_value": row[4],
                "pk": bool(row[5]),
            })

        return columns

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
