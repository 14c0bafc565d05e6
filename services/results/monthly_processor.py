"""
services/results/monthly_processor.py

월간 성적 자동 산출 (교사 개입 없이 정규 시험 + 출결로 계산)

처리 순서
1) 달력에서 해당 월 수업일 확인 (없으면 기본 달력 합성) + 요약 갱신
2) 반(batch)별로 재원생 전체에 대해 시험 평균 / 출결 점수 계산
3) 가중 합산 → 반 내 순위 부여 → 반/월 결과 통째 교체
4) 모든 반 처리 후 학년별 상위권 캐시 재생성

오류 처리
- 학생 1명 계산 실패: 로그 후 해당 학생만 제외
- 반 1개 실패(저장 실패 포함): 로그 + failed_results 증가, 다른 반은 계속
- 반 목록 조회 같은 전체 단계 실패: 호출자(트리거/스케줄러)로 전파
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from config.settings import settings
from models.batches import Batch
from models.monthly_results import MonthlyResult
from models.students import Student
from schemas.calendar import WorkingDays
from schemas.monthly_results import MonthStatistics, ProcessingStats, StudentMonthlyData
from services.results.attendance_scorer import calculate_attendance_score
from services.results.calendar_provider import CalendarProvider
from services.results.exam_average import calculate_exam_average
from services.results.leaderboard import rebuild_top_performers
from services.results.result_store import replace_monthly_results
from services.results.scoring import ScoreWeights, compose_score, rank_results

logger = logging.getLogger(__name__)


class MonthlyProcessor:

    def __init__(
        self,
        db: Session,
        weights: Optional[ScoreWeights] = None,
        calendar: Optional[CalendarProvider] = None,
        class_levels: Optional[Sequence[str]] = None,
        top_performer_limit: Optional[int] = None,
    ):
        self.db = db
        self.weights = weights or ScoreWeights.from_settings()
        self.calendar = calendar or CalendarProvider(db)
        self.class_levels = list(settings.CLASS_LEVELS if class_levels is None else class_levels)
        self.top_performer_limit = settings.TOP_PERFORMER_LIMIT if top_performer_limit is None else top_performer_limit

    # ==========================================================
    # [1] 월 전체 처리
    # ==========================================================
    def process_monthly_results(self, year: int, month: int, batch_ids: Optional[Sequence[int]] = None) -> ProcessingStats:
        started = time.perf_counter()
        logger.info(f"🚀 {year}-{month:02d} 월간 결과 처리 시작")
        stats = ProcessingStats()

        working = self.calendar.get_working_days(year, month)
        self.calendar.refresh_summary(year, month, working)

        targets = self._resolve_batch_ids(batch_ids)
        stats.total_batches = len(targets)
        logger.info(f"📊 대상 반 {len(targets)}개, 수업일 {working.working_days}일")

        for batch_id in targets:
            try:
                results = self.process_batch(batch_id, year, month, working)
            except Exception:
                logger.exception(f"❌ batch {batch_id} 처리 실패")
                stats.failed_results += 1
                stats.failed_batch_ids.append(batch_id)
                continue
            stats.total_students += len(results)
            stats.successful_results += len(results)
            logger.info(f"✅ batch {batch_id}: {len(results)}명 처리")

        try:
            rebuild_top_performers(self.db, year, month, self.class_levels, self.top_performer_limit)
            stats.leaderboard_updated = True
        except Exception:
            logger.exception(f"상위권 캐시 갱신 실패: {year}-{month:02d}")

        stats.processing_time_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"🎉 {year}-{month:02d} 월간 결과 처리 완료: {stats.model_dump()}")
        return stats

    # ==========================================================
    # [2] 반 단위 처리
    # ==========================================================
    def process_batch(self, batch_id: int, year: int, month: int, working: Optional[WorkingDays] = None) -> List[StudentMonthlyData]:
        if working is None:
            working = self.calendar.get_working_days(year, month)

        students = self._get_batch_students(batch_id)
        if not students:
            logger.warning(f"⚠️ batch {batch_id}에 재원생 없음")

        results = []
        for student in students:
            try:
                results.append(self.calculate_student_result(student, batch_id, year, month, working))
            except Exception:
                logger.exception(f"❌ 학생 {student.id} 결과 계산 실패 (제외)")

        ranked = rank_results(results)
        replace_monthly_results(self.db, batch_id, year, month, ranked)
        return ranked

    # ==========================================================
    # [3] 학생 1명 계산
    # ==========================================================
    def calculate_student_result(self, student: Student, batch_id: int, year: int, month: int, working: WorkingDays) -> StudentMonthlyData:
        exam = calculate_exam_average(self.db, student.id, batch_id, year, month)
        attendance = calculate_attendance_score(
            self.db, student.id, batch_id, year, month, working.working_days, working.working_dates
        )
        final_score = compose_score(
            exam.average, attendance.attendance_percentage, attendance.bonus_percentage, self.weights
        )
        return StudentMonthlyData(
            student_id=student.id,
            student_name=student.full_name,
            batch_id=batch_id,
            class_level=student.class_level or settings.DEFAULT_CLASS_LEVEL,
            exam_average=exam.average,
            total_exams=exam.total_exams,
            present_days=attendance.present_days,
            excused_days=attendance.excused_days,
            absent_days=attendance.absent_days,
            working_days=working.working_days,
            attendance_percentage=attendance.attendance_percentage,
            bonus_percentage=attendance.bonus_percentage,
            final_score=final_score,
        )

    # ==========================================================
    # [4] 조회용
    # ==========================================================
    def is_month_processed(self, year: int, month: int) -> bool:
        count = (
            self.db.query(func.count(MonthlyResult.id))
            .filter(MonthlyResult.year == year, MonthlyResult.month == month)
            .scalar()
        )
        return (count or 0) > 0

    def get_month_statistics(self, year: int, month: int) -> Optional[MonthStatistics]:
        row = (
            self.db.query(
                func.count(MonthlyResult.id),
                func.count(func.distinct(MonthlyResult.batch_id)),
                func.avg(MonthlyResult.final_score),
                func.max(MonthlyResult.final_score),
                func.min(MonthlyResult.final_score),
            )
            .filter(MonthlyResult.year == year, MonthlyResult.month == month)
            .one()
        )
        total_results, total_batches, average, highest, lowest = row
        if not total_results:
            return None
        return MonthStatistics(
            year=year,
            month=month,
            total_results=total_results,
            total_batches=total_batches,
            average_score=round(float(average), 2) if average is not None else None,
            highest_score=highest,
            lowest_score=lowest,
        )

    # ==========================================================
    # 내부 헬퍼
    # ==========================================================
    def _resolve_batch_ids(self, batch_ids: Optional[Sequence[int]]) -> List[int]:
        if batch_ids is not None:
            return list(dict.fromkeys(batch_ids))
        return [row.id for row in self.db.query(Batch.id).order_by(Batch.id).all()]

    def _get_batch_students(self, batch_id: int) -> List[Student]:
        return (
            self.db.query(Student)
            .filter(Student.batch_id == batch_id, Student.is_active.is_(True))
            .order_by(Student.id)
            .all()
        )


ProcessorFactory = Callable[[Session], MonthlyProcessor]
