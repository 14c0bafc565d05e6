from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import require_operator_token
from schemas.calendar import CalendarUpdateRequest
from schemas.common import ok
from services.results.calendar_provider import CalendarProvider

router = APIRouter(prefix="/calendar", tags=["학사 달력"])


# ✅ [READ] 월별 달력 + 요약 (없으면 기본 달력 생성)
@router.get("/{year}/{month}")
def read_monthly_calendar(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    return ok(CalendarProvider(db).get_monthly_calendar(year, month))


# ✅ [UPDATE] 월별 달력 교체 (운영자 전용)
@router.put("/{year}/{month}", dependencies=[Depends(require_operator_token)])
def update_monthly_calendar(
    payload: CalendarUpdateRequest,
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    calendar = CalendarProvider(db).update_monthly_calendar(year, month, payload.days)
    working = calendar.summary.working_days if calendar.summary else None
    return ok(calendar, f"{year}-{month:02d} 달력이 수정되었습니다 (수업일 {working}일)")
