from datetime import date, datetime
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


# ✅ 일 단위 달력 정보 (DB 행 또는 메모리에서 합성한 기본 달력)
class CalendarDay(BaseModel):
    date: date
    year: int
    month: int
    day_of_week: int                 # 0=일요일
    is_working_day: bool
    day_type: Optional[str] = "regular"
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ✅ Calendar Provider 반환값
class WorkingDays(BaseModel):
    working_days: int
    days: List[CalendarDay] = []

    @property
    def working_dates(self) -> Set[date]:
        return {d.date for d in self.days if d.is_working_day}


class MonthlyCalendarSummaryOut(BaseModel):
    year: int
    month: int
    total_days: int
    working_days: int
    holidays: int
    last_updated: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MonthlyCalendarOut(BaseModel):
    year: int
    month: int
    summary: Optional[MonthlyCalendarSummaryOut] = None
    days: List[CalendarDay] = []


# ✅ 달력 수정 요청 (PUT /calendar/{year}/{month})
class CalendarDayUpdate(BaseModel):
    day: int = Field(..., ge=1, le=31, description="일(day of month)")
    is_working: bool = Field(..., description="수업일 여부")
    day_type: str = Field("regular", max_length=20, description="regular, holiday, exam_day ...")
    note: Optional[str] = Field(None, max_length=200)


class CalendarUpdateRequest(BaseModel):
    days: List[CalendarDayUpdate]
