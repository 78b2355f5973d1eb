"""
애플리케이션 예외 정의

호출자에게 전달되는 오류 분류:
- ValidationError: 입력 오류 (수정 없이 재시도 불가)
- NotFoundError: 대상 없음 또는 소유자 불일치
- ConflictError: 동시 쓰기 경합 (작업 전체 재시도 가능)
- PersistenceError: 저장소 오류 (백오프 후 재시도 가능)

Engine 내부에서는 재시도하지 않음.
"""


class LedgerError(Exception):
    """Ledger 예외 기본 클래스"""

    pass


class ValidationError(LedgerError):
    """잘못되었거나 누락된 입력"""

    pass


class NotFoundError(LedgerError):
    """계좌/거래가 없거나 요청 사용자 소유가 아님"""

    pass


class ConflictError(LedgerError):
    """저장소가 감지한 동시 수정 경합"""

    pass


class PersistenceError(LedgerError):
    """저장소 접근 또는 쓰기 실패"""

    pass
