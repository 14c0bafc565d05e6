# services/results/calendar_provider.py

import logging
from collections import Counter
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from models.calendar import AcademicCalendar, MonthlyCalendarSummary
from schemas.calendar import (
    CalendarDay,
    CalendarDayUpdate,
    MonthlyCalendarOut,
    MonthlyCalendarSummaryOut,
    WorkingDays,
)
from services.results.errors import CalendarValidationError
from utils.dates import days_in_month, sunday_based_weekday

logger = logging.getLogger(__name__)


class CalendarProvider:
    """
    월별 수업일(근무일) 제공
    - 달력 행이 없으면 기본 규칙(월~목 수업)으로 합성해 저장 → 이후 호출은 같은 결과
    - 저장/조회가 실패해도 메모리에서 계산한 값으로 월간 처리를 계속 진행
    """

    def __init__(self, db: Session, default_working_weekdays: Optional[Iterable[int]] = None):
        self.db = db
        if default_working_weekdays is None:
            default_working_weekdays = settings.DEFAULT_WORKING_WEEKDAYS
        self.default_working_weekdays = set(default_working_weekdays)

    # ==========================================================
    # [조회] 근무일 수
    # ==========================================================
    def get_working_days(self, year: int, month: int) -> WorkingDays:
        try:
            rows = self._load_days(year, month)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"달력 조회 실패, 기본 달력으로 대체: {year}-{month:02d}")
            return self._to_working_days(self.build_default_days(year, month))

        if rows:
            return self._to_working_days([CalendarDay.model_validate(r) for r in rows])

        logger.info(f"{year}-{month:02d} 달력 없음 → 기본 달력 생성")
        days = self.build_default_days(year, month)
        working = self._to_working_days(days)
        if self._persist_days(days):
            self.refresh_summary(year, month, working)
        return working

    def build_default_days(self, year: int, month: int) -> List[CalendarDay]:
        days = []
        for day in range(1, days_in_month(year, month) + 1):
            d = date(year, month, day)
            is_working = d.weekday() in self.default_working_weekdays
            days.append(CalendarDay(
                date=d,
                year=year,
                month=month,
                day_of_week=sunday_based_weekday(d),
                is_working_day=is_working,
                day_type="regular" if is_working else "weekend",
                notes=None if is_working else "Weekend",
            ))
        return days

    # ==========================================================
    # [요약] monthly_calendar_summary 갱신 (delete + insert)
    # ==========================================================
    def refresh_summary(self, year: int, month: int, working: Optional[WorkingDays] = None) -> Optional[MonthlyCalendarSummaryOut]:
        if working is None:
            working = self.get_working_days(year, month)

        summary = MonthlyCalendarSummary(
            year=year,
            month=month,
            total_days=days_in_month(year, month),
            working_days=working.working_days,
            holidays=sum(1 for d in working.days if not d.is_working_day),
            last_updated=datetime.now(),
        )
        try:
            self.db.query(MonthlyCalendarSummary).filter(
                MonthlyCalendarSummary.year == year,
                MonthlyCalendarSummary.month == month,
            ).delete(synchronize_session=False)
            self.db.add(summary)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"월간 달력 요약 갱신 실패: {year}-{month:02d}")
            return None

        logger.info(f"📊 달력 요약 갱신: {year}-{month:02d} 수업일 {summary.working_days}/{summary.total_days}")
        return MonthlyCalendarSummaryOut.model_validate(summary)

    # ==========================================================
    # [달력 편집] 조회 / 월 단위 교체
    # ==========================================================
    def get_monthly_calendar(self, year: int, month: int) -> MonthlyCalendarOut:
        working = self.get_working_days(year, month)
        summary = (
            self.db.query(MonthlyCalendarSummary)
            .filter(MonthlyCalendarSummary.year == year, MonthlyCalendarSummary.month == month)
            .first()
        )
        return MonthlyCalendarOut(
            year=year,
            month=month,
            summary=MonthlyCalendarSummaryOut.model_validate(summary) if summary else None,
            days=working.days,
        )

    def update_monthly_calendar(self, year: int, month: int, updates: List[CalendarDayUpdate]) -> MonthlyCalendarOut:
        if not updates:
            raise CalendarValidationError("수정할 날짜가 없습니다")
        last_day = days_in_month(year, month)
        invalid = sorted({u.day for u in updates if u.day > last_day})
        if invalid:
            raise CalendarValidationError(f"{year}-{month:02d}에 없는 날짜: {invalid}")
        seen = Counter(u.day for u in updates)
        duplicated = sorted(day for day, count in seen.items() if count > 1)
        if duplicated:
            raise CalendarValidationError(f"{year}-{month:02d} 중복된 날짜: {duplicated}")

        rows = []
        for u in sorted(updates, key=lambda x: x.day):
            d = date(year, month, u.day)
            rows.append(AcademicCalendar(
                date=d,
                year=year,
                month=month,
                day_of_week=sunday_based_weekday(d),
                is_working_day=u.is_working,
                day_type=u.day_type,
                notes=u.note,
            ))

        try:
            self.db.query(AcademicCalendar).filter(
                AcademicCalendar.year == year,
                AcademicCalendar.month == month,
            ).delete(synchronize_session=False)
            self.db.add_all(rows)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"달력 수정 실패: {year}-{month:02d}")
            raise

        logger.info(f"📅 달력 수정: {year}-{month:02d} {len(rows)}일")
        self.refresh_summary(year, month)
        return self.get_monthly_calendar(year, month)

    # ==========================================================
    # 내부 헬퍼
    # ==========================================================
    def _load_days(self, year: int, month: int) -> List[AcademicCalendar]:
        return (
            self.db.query(AcademicCalendar)
            .filter(AcademicCalendar.year == year, AcademicCalendar.month == month)
            .order_by(AcademicCalendar.date)
            .all()
        )

    def _persist_days(self, days: List[CalendarDay]) -> bool:
        try:
            self.db.add_all([AcademicCalendar(**d.model_dump()) for d in days])
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("기본 달력 저장 실패 (메모리 값으로 계속 진행)")
            return False
        return True

    @staticmethod
    def _to_working_days(days: List[CalendarDay]) -> WorkingDays:
        return WorkingDays(working_days=sum(1 for d in days if d.is_working_day), days=days)
