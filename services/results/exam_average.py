# services/results/exam_average.py

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.exams import Exam, ExamSubmission
from schemas.monthly_results import ExamAverage
from utils.dates import month_datetime_range
from utils.numbers import Number, clamp, round_half_up, to_decimal

logger = logging.getLogger(__name__)

REGULAR_EXAM_MODE = "regular"


def exam_percentage(total_marks: Optional[int], marks_obtained: Optional[Number], percentage: Optional[Number]) -> Optional[Decimal]:
    """
    시험 1건의 백분율
    - percentage가 있으면 그대로 사용
    - 없으면 marks_obtained / total_marks * 100 (만점 > 0 일 때)
    - 둘 다 없으면 None (미채점 또는 미응시 → 평균에서 제외)
    """
    if percentage is not None:
        return to_decimal(percentage)
    if marks_obtained is not None and total_marks and total_marks > 0:
        return to_decimal(marks_obtained) * 100 / to_decimal(total_marks)
    return None


def calculate_exam_average(db: Session, student_id: int, batch_id: int, year: int, month: int) -> ExamAverage:
    """해당 월 정규(regular) 시험의 학생 평균 백분율. 조회 실패 시 0점 처리"""
    start, end = month_datetime_range(year, month)
    try:
        rows = (
            db.query(
                Exam.id,
                Exam.title,
                Exam.total_marks,
                ExamSubmission.marks_obtained,
                ExamSubmission.percentage,
            )
            .outerjoin(
                ExamSubmission,
                and_(ExamSubmission.exam_id == Exam.id, ExamSubmission.student_id == student_id),
            )
            .filter(
                Exam.exam_mode == REGULAR_EXAM_MODE,
                Exam.is_active.is_(True),
                Exam.batch_id == batch_id,
                Exam.created_at >= start,
                Exam.created_at < end,
            )
            .order_by(Exam.id)
            .all()
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"시험 평균 조회 실패: student={student_id}, batch={batch_id}, {year}-{month:02d}")
        return ExamAverage()

    percentages = []
    for row in rows:
        value = exam_percentage(row.total_marks, row.marks_obtained, row.percentage)
        if value is None:
            continue
        percentages.append(value)
        logger.debug(f"시험 '{row.title}': {row.marks_obtained}/{row.total_marks} → {value}%")

    if not percentages:
        return ExamAverage(average=0, total_exams=0)

    average = round_half_up(sum(percentages) / len(percentages))
    logger.debug(f"학생 {student_id}: 정규 시험 {len(percentages)}건, 평균 {average}%")
    return ExamAverage(average=clamp(average), total_exams=len(percentages))
