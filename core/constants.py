"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → claritynest/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    CURRENCY: str = "USD"
    ACCOUNT_COLOR: str = "#4A6C6F"
    DISPLAY_ORDER: int = 0

    LOG_LEVEL: str = "INFO"

    # 거래 내역 페이지 크기
    PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 500
    RECENT_TRANSACTIONS: int = 5
    NET_WORTH_HISTORY_DAYS: int = 30


class Limits:
    """입력 길이/범위 제한 (DB 컬럼 정의 기준)"""

    ACCOUNT_NAME_MAX: int = 100
    INSTITUTION_MAX: int = 100
    NOTE_MAX: int = 255
    CATEGORY_MAX: int = 50

    # DECIMAL(15, 2) → 정수부 13자리
    AMOUNT_MAX_DIGITS: int = 13


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    PROD_DB: Path = DATA_DIR / "claritynest_prod.db"
    DEV_DB: Path = DATA_DIR / "claritynest_dev.db"
