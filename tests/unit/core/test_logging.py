"""core/logging.py 테스트"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging import LOG_FILE_BACKUP_COUNT, get_log_file_path, setup_logging


class TestGetLogFilePath:
    def test_process_directory(self, tmp_path: Path) -> None:
        path = get_log_file_path("reconcile", tmp_path)

        assert path == tmp_path / "reconcile" / "reconcile.log"


class TestSetupLogging:
    """setup_logging 함수 테스트"""

    def test_handlers(self, tmp_path: Path) -> None:
        """콘솔 + daily 파일 핸들러"""
        root = setup_logging("backup", log_dir=tmp_path)
        try:
            handlers = root.handlers
            assert len(handlers) == 2

            file_handlers = [h for h in handlers if isinstance(h, TimedRotatingFileHandler)]
            assert len(file_handlers) == 1
            assert file_handlers[0].backupCount == LOG_FILE_BACKUP_COUNT
            assert (tmp_path / "backup").is_dir()
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()

    def test_repeated_setup_does_not_duplicate(self, tmp_path: Path) -> None:
        """재호출 시 기존 핸들러 교체"""
        setup_logging("init_db", log_dir=tmp_path)
        root = setup_logging("init_db", log_dir=tmp_path)
        try:
            assert len(root.handlers) == 2
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()

    def test_writes_file(self, tmp_path: Path) -> None:
        root = setup_logging("reconcile", console_level="WARNING", log_dir=tmp_path)
        try:
            logging.getLogger("core.ledger.engine").info("잔액 재계산")
            for handler in root.handlers:
                handler.flush()

            content = get_log_file_path("reconcile", tmp_path).read_text(encoding="utf-8")
            assert "잔액 재계산" in content
            assert "core.ledger.engine" in content
            assert "INFO" in content
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()

    def test_noisy_loggers_quieted(self, tmp_path: Path) -> None:
        root = setup_logging("quiet", log_dir=tmp_path)
        try:
            assert logging.getLogger("aiosqlite").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
