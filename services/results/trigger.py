"""
services/results/trigger.py

시험 점수 입력 → 월간 결과 자동 재계산 트리거

- 처리 키: "{batch_id}-{year}-{month}" (Idle → Processing → Idle)
- 같은 키가 처리 중이면 즉시 건너뜀 (대기열 없음, 요청은 버려짐)
- 처리 성공/실패/타임아웃과 무관하게 finally에서 키 해제
- 블로킹 DB 작업은 run_in_executor로 돌리고 asyncio.wait_for로 제한 시간 적용
  (타임아웃 시 키는 해제되지만 이미 실행 중인 스레드 작업은 끝까지 진행됨)
- 단일 프로세스 전용. 다중 인스턴스 배포 시 ProcessingKeyRegistry를 분산 락 구현으로 교체
"""

import asyncio
import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import SessionLocal
from models.exams import Exam, ExamSubmission
from schemas.monthly_results import ProcessingStats, TriggerOutcome
from services.results.errors import ProcessingTimeoutError
from services.results.exam_average import REGULAR_EXAM_MODE
from services.results.monthly_processor import MonthlyProcessor, ProcessorFactory
from services.results.notifier import ResultNotifier, result_notifier
from utils.dates import month_datetime_range

logger = logging.getLogger(__name__)


# run_in_executor 래퍼
async def run_blocking(fn, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))


ALL_BATCHES = "all"


def processing_key(batch_id: Optional[int], year: int, month: int) -> str:
    """반 단위 키 "{batch_id}-{year}-{month}". batch_id가 None이면 월 전체 키 "all-{year}-{month}" """
    return f"{ALL_BATCHES if batch_id is None else batch_id}-{year}-{month}"


class ProcessingKeyRegistry:
    """
    처리 중인 키 집합. 확인+추가를 뮤텍스로 묶어 경쟁 트리거 중 하나만 통과
    - 월 전체 키("all-Y-M")는 같은 달의 반 단위 키와 서로 배타적
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._keys = set()

    def try_acquire(self, key: str) -> bool:
        with self._lock:
            if self._conflicts(key):
                return False
            self._keys.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._keys.discard(key)

    def is_processing(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def active_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._keys)

    def _conflicts(self, key: str) -> bool:
        if key in self._keys:
            return True
        scope, _, period = key.partition("-")
        if scope == ALL_BATCHES:
            return any(k.partition("-")[2] == period for k in self._keys)
        return f"{ALL_BATCHES}-{period}" in self._keys


# 트리거 코디네이터와 스케줄러가 공유하는 키 집합
processing_registry = ProcessingKeyRegistry()


class TriggerCoordinator:

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        registry: Optional[ProcessingKeyRegistry] = None,
        notifier: Optional[ResultNotifier] = None,
        processor_factory: ProcessorFactory = MonthlyProcessor,
        reprocess_all_batches_in_month: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.registry = processing_registry if registry is None else registry
        self.notifier = result_notifier if notifier is None else notifier
        self.processor_factory = processor_factory
        if reprocess_all_batches_in_month is None:
            reprocess_all_batches_in_month = settings.REPROCESS_ALL_BATCHES_IN_MONTH
        # TODO: 시험 1건으로 월 전체 반을 재계산하는 기존 동작이 의도인지 확인 후 기본값을 False로 좁힐지 결정
        self.reprocess_all_batches_in_month = reprocess_all_batches_in_month
        self.timeout_seconds = settings.PROCESSING_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    # ==========================================================
    # [1] 시험 점수 입력
    # ==========================================================
    async def on_exam_marks_entered(self, exam_id: int) -> TriggerOutcome:
        logger.info(f"🎯 자동 트리거: 시험 {exam_id} 점수 입력")
        exam = await run_blocking(self._load_exam, exam_id)
        if exam is None:
            logger.warning(f"⚠️ 시험 {exam_id} 없음")
            return TriggerOutcome(status="exam_not_found", exam_id=exam_id, message="시험을 찾을 수 없습니다")

        batch_id, created_at = exam
        year, month = created_at.year, created_at.month
        key = processing_key(batch_id, year, month)

        if not self.registry.try_acquire(key):
            logger.info(f"⚠️ {key} 이미 처리 중 → 건너뜀")
            return TriggerOutcome(
                status="skipped_in_progress", exam_id=exam_id, batch_id=batch_id,
                year=year, month=month, key=key, message="이미 처리 중입니다",
            )

        try:
            batch_ids = None if self.reprocess_all_batches_in_month else [batch_id]
            stats = await self._run_with_deadline(year, month, batch_ids)
            logger.info(f"✅ {key} 자동 생성 완료: {stats.model_dump()}")
            await self.notifier.notify(batch_id, year, month, stats.successful_results)
        finally:
            self.registry.release(key)

        return TriggerOutcome(
            status="processed", exam_id=exam_id, batch_id=batch_id,
            year=year, month=month, key=key, stats=stats, message="월간 결과가 생성되었습니다",
        )

    # ==========================================================
    # [2] 시험 1건 채점 완료 여부
    # ==========================================================
    async def on_exam_completed(self, exam_id: int) -> TriggerOutcome:
        counts = await run_blocking(self._count_exam_submissions, exam_id)
        if counts is None:
            return TriggerOutcome(status="exam_not_found", exam_id=exam_id, message="시험을 찾을 수 없습니다")

        total, marked = counts
        if total > 0 and marked == total:
            logger.info(f"✅ 시험 {exam_id}: 전원 채점 완료")
            return await self.on_exam_marks_entered(exam_id)

        logger.info(f"📊 시험 {exam_id} 채점 진행: {marked}/{total}")
        return TriggerOutcome(status="incomplete", exam_id=exam_id, message=f"{marked}/{total} 채점됨")

    # ==========================================================
    # [3] 반/월 전체 시험 채점 완료 여부
    # ==========================================================
    async def check_month_completion(self, batch_id: int, year: int, month: int) -> TriggerOutcome:
        progress = await run_blocking(self._month_exam_progress, batch_id, year, month)
        if not progress:
            logger.info(f"📝 batch {batch_id} {year}-{month:02d} 정규 시험 없음")
            return TriggerOutcome(
                status="incomplete", batch_id=batch_id, year=year, month=month, message="해당 월 정규 시험이 없습니다",
            )

        pending = [(exam_id, marked, total) for exam_id, total, marked in progress if total == 0 or marked < total]
        if pending:
            for exam_id, marked, total in pending:
                logger.info(f"⏳ 시험 {exam_id}: {marked}/{total} 채점")
            return TriggerOutcome(
                status="incomplete", batch_id=batch_id, year=year, month=month,
                message=f"채점 미완료 시험 {len(pending)}건",
            )

        logger.info(f"🎉 batch {batch_id} {year}-{month:02d} 모든 시험 채점 완료 → 결과 생성")
        first_exam_id = progress[0][0]
        return await self.on_exam_marks_entered(first_exam_id)

    # ==========================================================
    # 내부: 제한 시간 내 처리
    # ==========================================================
    async def _run_with_deadline(self, year: int, month: int, batch_ids: Optional[Sequence[int]]) -> ProcessingStats:
        try:
            return await asyncio.wait_for(
                run_blocking(self._process_month, year, month, batch_ids),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"⏰ {year}-{month:02d} 처리 시간 초과 ({self.timeout_seconds}s)")
            raise ProcessingTimeoutError(f"{year}-{month:02d} 처리가 {self.timeout_seconds}초를 넘었습니다") from e
        except Exception:
            logger.exception(f"❌ {year}-{month:02d} 자동 처리 실패")
            raise

    def _process_month(self, year: int, month: int, batch_ids: Optional[Sequence[int]]) -> ProcessingStats:
        db = self.session_factory()
        try:
            return self.processor_factory(db).process_monthly_results(year, month, batch_ids)
        finally:
            db.close()

    # ==========================================================
    # 내부: 조회 (executor 스레드에서 실행, 세션은 매번 새로)
    # ==========================================================
    def _load_exam(self, exam_id: int):
        db = self.session_factory()
        try:
            exam = db.query(Exam.batch_id, Exam.created_at).filter(Exam.id == exam_id).first()
            return (exam.batch_id, exam.created_at) if exam else None
        finally:
            db.close()

    def _count_exam_submissions(self, exam_id: int) -> Optional[Tuple[int, int]]:
        db = self.session_factory()
        try:
            if db.query(Exam.id).filter(Exam.id == exam_id).first() is None:
                return None
            return _submission_counts(db, exam_id)
        finally:
            db.close()

    def _month_exam_progress(self, batch_id: int, year: int, month: int) -> List[Tuple[int, int, int]]:
        start, end = month_datetime_range(year, month)
        db = self.session_factory()
        try:
            exam_ids = [
                row.id
                for row in db.query(Exam.id)
                .filter(
                    Exam.batch_id == batch_id,
                    Exam.exam_mode == REGULAR_EXAM_MODE,
                    Exam.is_active.is_(True),
                    Exam.created_at >= start,
                    Exam.created_at < end,
                )
                .order_by(Exam.created_at, Exam.id)
                .all()
            ]
            return [(exam_id, *_submission_counts(db, exam_id)) for exam_id in exam_ids]
        finally:
            db.close()


def _submission_counts(db: Session, exam_id: int) -> Tuple[int, int]:
    """(전체 제출 수, 채점된 제출 수). 점수나 백분율 중 하나라도 있으면 채점된 것으로 봄"""
    total = db.query(func.count(ExamSubmission.id)).filter(ExamSubmission.exam_id == exam_id).scalar() or 0
    marked = (
        db.query(func.count(ExamSubmission.id))
        .filter(
            ExamSubmission.exam_id == exam_id,
            or_(ExamSubmission.marks_obtained.isnot(None), ExamSubmission.percentage.isnot(None)),
        )
        .scalar()
        or 0
    )
    return total, marked


trigger_coordinator = TriggerCoordinator()
