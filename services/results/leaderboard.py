# services/results/leaderboard.py

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from models.monthly_results import MonthlyResult, TopPerformer
from models.students import Student
from services.results.errors import ResultPersistenceError

logger = logging.getLogger(__name__)


def rebuild_top_performers(
    db: Session,
    year: int,
    month: int,
    class_levels: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
) -> int:
    """
    학년별 상위 N명 캐시 재생성 (모든 반 결과 대상)
    - 반 내 순위 ↑, 최종 점수 ↓, 학생 ID ↑ 순으로 정렬 후 상위 N명
    - 캐시 순위는 학년 그룹 내 위치(1..N)
    - 해당 월 캐시는 delete + insert 한 트랜잭션으로 교체
    """
    class_levels = list(settings.CLASS_LEVELS if class_levels is None else class_levels)
    limit = settings.TOP_PERFORMER_LIMIT if limit is None else limit

    rows = (
        db.query(MonthlyResult, Student.first_name, Student.last_name)
        .outerjoin(Student, Student.id == MonthlyResult.student_id)
        .filter(MonthlyResult.year == year, MonthlyResult.month == month)
        .all()
    )

    grouped: Dict[str, list] = defaultdict(list)
    for result, first_name, last_name in rows:
        name = f"{first_name or ''} {last_name or ''}".strip() or "Unknown"
        grouped[result.class_level].append((result, name))

    entries: List[TopPerformer] = []
    for class_level in class_levels:
        ranked = sorted(
            grouped.get(class_level, []),
            key=lambda item: (item[0].class_rank, -item[0].final_score, item[0].student_id),
        )[:limit]
        for position, (result, name) in enumerate(ranked, start=1):
            entries.append(TopPerformer(
                student_id=result.student_id,
                year=year,
                month=month,
                class_level=class_level,
                rank=position,
                final_score=result.final_score,
                student_name=name,
            ))

    try:
        db.query(TopPerformer).filter(
            TopPerformer.year == year,
            TopPerformer.month == month,
        ).delete(synchronize_session=False)
        db.add_all(entries)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise ResultPersistenceError(f"{year}-{month:02d} 상위권 캐시 저장 실패") from e

    logger.info(f"🏆 {year}-{month:02d} 상위권 캐시 갱신: {len(entries)}명")
    return len(entries)


def list_top_performers(db: Session, year: int, month: int) -> List[TopPerformer]:
    order = {level: i for i, level in enumerate(settings.CLASS_LEVELS)}
    rows = (
        db.query(TopPerformer)
        .filter(TopPerformer.year == year, TopPerformer.month == month)
        .all()
    )
    return sorted(rows, key=lambda r: (order.get(r.class_level, len(order)), r.class_level, r.rank))
