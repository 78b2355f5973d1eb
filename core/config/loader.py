"""
설정 로더

settings.yaml 로드 및 DB 경로 결정
"""

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths
from core.types import AppMode

# ISO 4217 형식 (대문자 3자리)
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


@dataclass(frozen=True)
class AppConfig:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    mode: AppMode
    db_path: Path
    default_currency: str
    log_level: str


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def get_db_path(mode: AppMode | str) -> Path:
    """모드에 따른 기본 DB 경로 반환

    Args:
        mode: 실행 모드 (PRODUCTION/DEVELOPMENT)

    Returns:
        DB 파일 경로 (Path 타입)
    """
    if isinstance(mode, str):
        mode = AppMode(mode.lower())

    if mode == AppMode.PRODUCTION:
        return Paths.PROD_DB
    return Paths.DEV_DB


def load_config(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스

    Raises:
        ConfigLoadError: 파일이 없거나 형식이 잘못된 경우
        ValueError: 유효하지 않은 mode인 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise ConfigLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise ConfigLoadError("settings.yaml이 비어 있습니다")

    # mode 검증
    mode_str = data.get("mode")
    if mode_str is None:
        raise ConfigLoadError("settings.yaml에 'mode' 필드가 없습니다")

    try:
        mode = AppMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in AppMode]
        raise ValueError(
            f"유효하지 않은 mode입니다: '{mode_str}'. "
            f"유효한 값: {valid_modes}"
        ) from e

    # DB 경로 (지정하지 않으면 모드별 기본값)
    db_config = data.get("database") or {}
    db_path_str = db_config.get("path")
    if db_path_str:
        db_path = Path(db_path_str)
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path
    else:
        db_path = get_db_path(mode)

    # 기본 통화
    ledger_config = data.get("ledger") or {}
    currency = str(ledger_config.get("default_currency", Defaults.CURRENCY)).upper()
    if not CURRENCY_PATTERN.match(currency):
        raise ConfigLoadError(
            f"settings.yaml의 ledger.default_currency가 잘못되었습니다: {currency}"
        )

    logging_config = data.get("logging") or {}
    log_level = str(logging_config.get("level", Defaults.LOG_LEVEL)).upper()

    return AppConfig(
        mode=mode,
        db_path=db_path,
        default_currency=currency,
        log_level=log_level,
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            type(self)._config = load_config(settings_path)

    @property
    def mode(self) -> AppMode:
        """현재 실행 모드"""
        assert self._config is not None
        return self._config.mode

    @property
    def db_path(self) -> Path:
        """현재 모드의 DB 경로"""
        assert self._config is not None
        return self._config.db_path

    @property
    def default_currency(self) -> str:
        """계좌 생성 시 기본 통화"""
        assert self._config is not None
        return self._config.default_currency

    @property
    def log_level(self) -> str:
        """로그 레벨 이름"""
        assert self._config is not None
        return self._config.log_level

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
