# services/results/scheduler.py

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from config.settings import settings
from database.db import SessionLocal
from schemas.monthly_results import ProcessingStats
from services.results.errors import ProcessingInProgressError, ProcessingTimeoutError
from services.results.monthly_processor import MonthlyProcessor, ProcessorFactory
from services.results.trigger import ProcessingKeyRegistry, processing_key, processing_registry, run_blocking
from utils.dates import previous_month

logger = logging.getLogger(__name__)

SCHEDULER_KEY = "monthly-scheduler"


class MonthlyResultScheduler:
    """
    월말 자동 처리 스케줄러
    - interval_seconds 마다 월이 바뀌었는지 확인, 매월 1일이면 지난달 처리 (이미 처리된 달은 건너뜀)
    - 수동 실행(manual_trigger)과 자동 실행은 같은 가드 키를 공유 → 동시에 하나만
    - 실행 중에는 공유 레지스트리의 월 전체 키를 잡아 같은 달 시험 트리거와 겹치지 않음
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        processor_factory: ProcessorFactory = MonthlyProcessor,
        interval_seconds: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
        registry: Optional[ProcessingKeyRegistry] = None,
    ):
        self.session_factory = session_factory
        self.processor_factory = processor_factory
        self.interval_seconds = settings.SCHEDULER_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self.timeout_seconds = settings.PROCESSING_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self.clock = clock
        self.last_checked_month = ""
        self._guard = ProcessingKeyRegistry()
        self.registry = processing_registry if registry is None else registry
        self._task: Optional[asyncio.Task] = None

    # ==========================================================
    # 시작 / 중지 / 상태
    # ==========================================================
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_processing(self) -> bool:
        return self._guard.is_processing(SCHEDULER_KEY)

    def start(self) -> bool:
        if self.is_running:
            logger.info("⏰ 월간 결과 스케줄러 이미 실행 중")
            return False
        self._task = asyncio.get_running_loop().create_task(self._run_loop())
        logger.info(f"🚀 월간 결과 스케줄러 시작 ({self.interval_seconds}초 간격)")
        return True

    def stop(self) -> bool:
        if not self.is_running:
            return False
        self._task.cancel()
        self._task = None
        logger.info("⏹️ 월간 결과 스케줄러 중지")
        return True

    def status(self) -> dict:
        return {
            "is_running": self.is_running,
            "is_processing": self.is_processing,
            "last_checked_month": self.last_checked_month,
            "interval_seconds": self.interval_seconds,
        }

    async def _run_loop(self):
        while True:
            try:
                await self.check_for_new_month()
            except Exception:
                logger.exception("월 변경 확인 중 오류")
            await asyncio.sleep(self.interval_seconds)

    # ==========================================================
    # 자동 처리
    # ==========================================================
    async def check_for_new_month(self) -> Optional[ProcessingStats]:
        now = self.clock()
        month_key = f"{now.year}-{now.month}"
        if self.last_checked_month == month_key:
            return None

        stats = None
        if now.day == 1:
            stats = await self.process_last_month(now.date())
        self.last_checked_month = month_key
        return stats

    async def process_last_month(self, today: Optional[date] = None) -> Optional[ProcessingStats]:
        year, month = previous_month(today or self.clock().date())
        if not self._guard.try_acquire(SCHEDULER_KEY):
            logger.warning("⚠️ 월간 처리 이미 진행 중 → 건너뜀")
            return None

        try:
            if await run_blocking(self._is_processed, year, month):
                logger.info(f"✅ {year}-{month:02d} 이미 처리됨 → 건너뜀")
                return None
            stats = await self._run_with_deadline(year, month)
            logger.info(f"🎉 {year}-{month:02d} 자동 처리 완료: {stats.model_dump()}")
            return stats
        except Exception:
            logger.exception(f"💥 {year}-{month:02d} 자동 처리 실패")
            return None
        finally:
            self._guard.release(SCHEDULER_KEY)

    # ==========================================================
    # 수동 처리
    # ==========================================================
    async def manual_trigger(self, year: Optional[int] = None, month: Optional[int] = None) -> ProcessingStats:
        if (year is None) != (month is None):
            raise ValueError("year와 month는 함께 지정하거나 둘 다 생략해야 합니다")
        if not self._guard.try_acquire(SCHEDULER_KEY):
            raise ProcessingInProgressError("월간 처리가 이미 진행 중입니다")

        try:
            if year is None:
                now = self.clock()
                year, month = now.year, now.month
            logger.info(f"🚀 수동 실행: {year}-{month:02d}")
            stats = await self._run_with_deadline(year, month)
            logger.info(f"✅ 수동 실행 완료: {year}-{month:02d} {stats.model_dump()}")
            return stats
        finally:
            self._guard.release(SCHEDULER_KEY)

    # ==========================================================
    # 내부
    # ==========================================================
    async def _run_with_deadline(self, year: int, month: int) -> ProcessingStats:
        # 월 전체 키: 같은 달 반 단위 트리거가 처리 중이면 실행하지 않음
        key = processing_key(None, year, month)
        if not self.registry.try_acquire(key):
            raise ProcessingInProgressError(f"{year}-{month:02d} 결과를 다른 작업이 처리 중입니다")

        try:
            return await asyncio.wait_for(run_blocking(self._process, year, month), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ProcessingTimeoutError(f"{year}-{month:02d} 처리가 {self.timeout_seconds}초를 넘었습니다") from e
        finally:
            self.registry.release(key)

    def _process(self, year: int, month: int) -> ProcessingStats:
        db = self.session_factory()
        try:
            return self.processor_factory(db).process_monthly_results(year, month)
        finally:
            db.close()

    def _is_processed(self, year: int, month: int) -> bool:
        db = self.session_factory()
        try:
            return self.processor_factory(db).is_month_processed(year, month)
        finally:
            db.close()


monthly_result_scheduler = MonthlyResultScheduler()
