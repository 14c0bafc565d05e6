"""월간 성적 엔진 예외 모음 (middlewares/error_handler.py에서 HTTP 응답으로 변환)"""


class ResultsEngineError(Exception):
    """엔진 공통 베이스 예외"""
    code = "RESULTS_ENGINE_ERROR"
    status_code = 500


class ResultPersistenceError(ResultsEngineError):
    """결과 교체(delete+insert) 트랜잭션 실패. 롤백 후 반드시 호출자에게 전달"""
    code = "RESULT_PERSIST_FAILED"
    status_code = 500


class ProcessingTimeoutError(ResultsEngineError):
    """처리 시간이 제한(PROCESSING_TIMEOUT_SECONDS)을 넘김"""
    code = "PROCESSING_TIMEOUT"
    status_code = 504


class ProcessingInProgressError(ResultsEngineError):
    """같은 대상에 대한 처리가 이미 진행 중"""
    code = "PROCESSING_IN_PROGRESS"
    status_code = 409


class CalendarValidationError(ResultsEngineError):
    """달력 수정 요청의 날짜가 해당 월에 없음"""
    code = "INVALID_CALENDAR"
    status_code = 422
