# services/results/attendance_scorer.py

import logging
from datetime import date
from typing import Iterable, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.attendance import Attendance, ATTENDANCE_PRESENT, ATTENDANCE_EXCUSED
from schemas.monthly_results import AttendanceScore
from utils.dates import month_date_range
from utils.numbers import percentage

logger = logging.getLogger(__name__)


def score_attendance(records: Iterable[Tuple[date, str]], working_days: int, working_dates: Set[date]) -> AttendanceScore:
    """
    3단계 출결 집계
    - present: 출석 +1, 보너스 +1
    - excused: 보너스 +1
    - absent(그 외 모든 값): 없음
    수업일이 아닌 날의 기록은 상태와 무관하게 무시
    """
    present_days = excused_days = absent_days = 0
    for record_date, status in records:
        if record_date not in working_dates:
            continue
        if status == ATTENDANCE_PRESENT:
            present_days += 1
        elif status == ATTENDANCE_EXCUSED:
            excused_days += 1
        else:
            absent_days += 1

    bonus_days = present_days + excused_days
    return AttendanceScore(
        present_days=present_days,
        excused_days=excused_days,
        absent_days=absent_days,
        attendance_percentage=percentage(present_days, working_days),
        bonus_percentage=percentage(bonus_days, working_days),
    )


def calculate_attendance_score(
    db: Session,
    student_id: int,
    batch_id: int,
    year: int,
    month: int,
    working_days: int,
    working_dates: Set[date],
) -> AttendanceScore:
    start, end = month_date_range(year, month)
    try:
        records = (
            db.query(Attendance.date, Attendance.status)
            .filter(
                Attendance.student_id == student_id,
                Attendance.batch_id == batch_id,
                Attendance.date >= start,
                Attendance.date < end,
            )
            .all()
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"출결 조회 실패: student={student_id}, batch={batch_id}, {year}-{month:02d}")
        return AttendanceScore()

    score = score_attendance(((r.date, r.status) for r in records), working_days, working_dates)
    logger.debug(
        f"학생 {student_id}: 출석 {score.present_days}, 공결 {score.excused_days}, 결석 {score.absent_days}"
        f" / {working_days}일 (출석 {score.attendance_percentage}%, 보너스 {score.bonus_percentage}%)"
    )
    return score
