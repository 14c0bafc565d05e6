# services/results/result_store.py

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.monthly_results import MonthlyResult
from schemas.monthly_results import StudentMonthlyData
from services.results.errors import ResultPersistenceError

logger = logging.getLogger(__name__)


def to_monthly_result_row(result: StudentMonthlyData, batch_id: int, year: int, month: int) -> MonthlyResult:
    return MonthlyResult(
        student_id=result.student_id,
        batch_id=batch_id,
        year=year,
        month=month,
        class_level=result.class_level,
        exam_average=result.exam_average,
        total_exams=result.total_exams,
        present_days=result.present_days,
        excused_days=result.excused_days,
        absent_days=result.absent_days,
        working_days=result.working_days,
        attendance_percentage=result.attendance_percentage,
        bonus_marks=result.bonus_percentage,
        final_score=result.final_score,
        class_rank=result.rank,
        total_students=result.total_students,
    )


def replace_monthly_results(db: Session, batch_id: int, year: int, month: int, results: List[StudentMonthlyData]) -> int:
    """
    (batch, year, month) 결과 전체 교체
    - 기존 행 삭제 + 새 행 삽입을 하나의 트랜잭션으로 커밋
    - 실패 시 롤백(기존 결과 유지) 후 ResultPersistenceError
    - 결과가 비어 있어도 기존 행은 지움 (현재 재원생 기준으로만 결과 유지)
    """
    mismatched = [r.student_id for r in results if r.batch_id != batch_id]
    if mismatched:
        raise ResultPersistenceError(f"batch {batch_id} 결과에 다른 반 학생 포함: {mismatched}")

    try:
        deleted = (
            db.query(MonthlyResult)
            .filter(
                MonthlyResult.batch_id == batch_id,
                MonthlyResult.year == year,
                MonthlyResult.month == month,
            )
            .delete(synchronize_session=False)
        )
        db.add_all([to_monthly_result_row(r, batch_id, year, month) for r in results])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"💥 월간 결과 저장 실패 (롤백): batch={batch_id}, {year}-{month:02d}: {e}")
        raise ResultPersistenceError(f"batch {batch_id} {year}-{month:02d} 결과 저장 실패") from e

    logger.info(f"💾 batch {batch_id} {year}-{month:02d}: 기존 {deleted}건 → 신규 {len(results)}건 저장")
    return len(results)


def list_monthly_results(db: Session, year: int, month: int, batch_id: Optional[int] = None) -> List[MonthlyResult]:
    query = db.query(MonthlyResult).filter(MonthlyResult.year == year, MonthlyResult.month == month)
    if batch_id is not None:
        query = query.filter(MonthlyResult.batch_id == batch_id)
    return query.order_by(MonthlyResult.batch_id, MonthlyResult.class_rank).all()
