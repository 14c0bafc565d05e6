"""
schemas/common.py

- 프로젝트 전반에서 재사용할 공용 스키마 모음
- Pydantic v2 기준
- 포함 내용:
  1) 에러 응답 표준: ErrorDetail, ErrorResponse
  2) 성공 응답 래퍼: SuccessEnvelope[T], ok()
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) 에러 응답 표준
# =========================================================

class ErrorDetail(BaseModel):
    """에러 코드/메시지를 담는 최소 단위"""
    code: str = Field(..., description="에러 식별 코드 (예: INTERNAL_ERROR, PROCESSING_TIMEOUT)")
    message: str = Field(..., description="사람이 읽을 수 있는 에러 메시지")

class ErrorResponse(BaseModel):
    """
    전역 에러 핸들러에서 내려주는 표준 에러 응답
    - middlewares/error_handler.py에서 이 스키마로 직렬화
    """
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="응답 생성 시각 (UTC)"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) 성공 응답 래퍼
# =========================================================

T = TypeVar("T")

class SuccessEnvelope(BaseModel, Generic[T]):
    """
    성공 응답 표준 래퍼
    - success: 항상 True
    - data: 실제 데이터(payload)
    - message: 사람이 읽을 수 있는 안내 문구(선택)
    """
    success: bool = True
    data: T
    message: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


def ok(data: Any, message: Optional[str] = None) -> dict:
    """라우터에서 바로 반환할 수 있는 dict 형태의 성공 응답"""
    body = SuccessEnvelope[Any](data=data, message=message).model_dump(mode="json")
    if message is None:
        body.pop("message")
    return body
