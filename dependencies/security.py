from typing import Optional, Annotated
from fastapi import Header, HTTPException
from config.settings import settings
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _bearer_token(authorization: Optional[str]) -> str:
    """'Bearer <token>' 헤더에서 토큰만 추출"""
    if not authorization:
        raise _unauthorized("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if not token:
        raise _unauthorized("Invalid Authorization header format")
    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid auth scheme")
    return token.strip()


def require_operator_token(authorization: AuthHeader = None):
    """수동 실행 / 스케줄러 제어 / 달력 수정 같은 운영자 전용 엔드포인트 보호"""
    # 토큰 미설정 환경에서는 운영자 기능을 열지 않음
    expected = settings.OPERATOR_TOKEN
    if not expected:
        raise HTTPException(status_code=503, detail="Operator token not configured")

    # 타이밍 안전 비교
    if not hmac.compare_digest(_bearer_token(authorization), expected):
        raise _unauthorized("Invalid token")
    return {"client": "operator"}
