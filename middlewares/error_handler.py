import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schemas.common import ErrorDetail, ErrorResponse
from services.results.errors import ResultsEngineError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def add_error_handlers(app: FastAPI):
    # ✅ 엔진 예외 → 예외 클래스에 정의된 코드/상태로 변환
    @app.exception_handler(ResultsEngineError)
    async def results_engine_exception_handler(request: Request, exc: ResultsEngineError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 실패: {exc.code} {exc}")
        else:
            logger.warning(f"{request.method} {request.url.path}: {exc.code} {exc}")
        return _error_response(exc.status_code, exc.code, str(exc))

    # ✅ 그 외 모든 예외 → 500 INTERNAL_ERROR (traceback 로그)
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path} 처리 중 예상치 못한 오류: {exc}", exc_info=exc)
        return _error_response(500, "INTERNAL_ERROR", str(exc))
