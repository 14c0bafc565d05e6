import calendar
from datetime import date, datetime
from typing import Tuple


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_date_range(year: int, month: int) -> Tuple[date, date]:
    """[해당 월 1일, 다음 달 1일) 반열림 구간"""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def month_datetime_range(year: int, month: int) -> Tuple[datetime, datetime]:
    start, end = month_date_range(year, month)
    return datetime.combine(start, datetime.min.time()), datetime.combine(end, datetime.min.time())


def previous_month(today: date) -> Tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def sunday_based_weekday(d: date) -> int:
    """0=일요일, 1=월요일 ... 6=토요일"""
    return (d.weekday() + 1) % 7
