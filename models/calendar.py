from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, Boolean, DateTime, UniqueConstraint
from database.db import Base

class AcademicCalendar(Base):
    __tablename__ = "academic_calendar"  # 학사 달력 (일 단위)

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, unique=True, index=True)       # 날짜
    year = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False, index=True)                # 1~12
    day_of_week = Column(Integer, nullable=False)                      # 0=일요일, 1=월요일 ...
    is_working_day = Column(Boolean, nullable=False, default=True)     # 수업일 여부
    day_type = Column(String(20), default="regular")                   # regular, weekend, holiday, exam_day ...
    notes = Column(String(200))                                        # 휴일 사유 등


class MonthlyCalendarSummary(Base):
    __tablename__ = "monthly_calendar_summary"  # 월별 근무일 요약

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    total_days = Column(Integer, nullable=False)                       # 해당 월 총 일수
    working_days = Column(Integer, nullable=False)                     # 수업일 수
    holidays = Column(Integer, nullable=False, default=0)              # 휴일 수
    last_updated = Column(DateTime, default=datetime.now)

    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_calendar_summary_year_month"),
    )
