from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import require_operator_token
from schemas.common import ok
from schemas.monthly_results import (
    ManualTriggerRequest,
    MonthCompletionRequest,
    MonthlyResultOut,
    TopPerformerOut,
)
from services.results.leaderboard import list_top_performers
from services.results.monthly_processor import MonthlyProcessor
from services.results.result_store import list_monthly_results
from services.results.scheduler import MonthlyResultScheduler, monthly_result_scheduler
from services.results.trigger import TriggerCoordinator, trigger_coordinator

router = APIRouter(prefix="/monthly-results", tags=["월간 성적 자동 산출"])

YearPath = Annotated[int, Path(ge=2000, le=2100, description="연도 (예: 2025)")]
MonthPath = Annotated[int, Path(ge=1, le=12, description="월 (1~12)")]


# ==========================================================
# [공통] 서비스 의존성 (테스트에서 dependency_overrides로 교체)
# ==========================================================
def get_trigger_coordinator() -> TriggerCoordinator:
    return trigger_coordinator

def get_scheduler() -> MonthlyResultScheduler:
    return monthly_result_scheduler


# ==========================================================
# [1단계] 자동 트리거
# ==========================================================

# ✅ [TRIGGER] 시험 점수 입력됨
@router.post("/triggers/exams/{exam_id}/marks-entered")
async def exam_marks_entered(exam_id: int, coordinator: TriggerCoordinator = Depends(get_trigger_coordinator)):
    outcome = await coordinator.on_exam_marks_entered(exam_id)
    return ok(outcome, outcome.message)

# ✅ [TRIGGER] 시험 채점 완료 확인 후 실행
@router.post("/triggers/exams/{exam_id}/completed")
async def exam_completed(exam_id: int, coordinator: TriggerCoordinator = Depends(get_trigger_coordinator)):
    outcome = await coordinator.on_exam_completed(exam_id)
    return ok(outcome, outcome.message)

# ✅ [TRIGGER] 반/월 모든 시험 채점 완료 확인 후 실행
@router.post("/triggers/month-completion")
async def month_completion(payload: MonthCompletionRequest, coordinator: TriggerCoordinator = Depends(get_trigger_coordinator)):
    outcome = await coordinator.check_month_completion(payload.batch_id, payload.year, payload.month)
    return ok(outcome, outcome.message)


# ==========================================================
# [2단계] 수동 실행 / 스케줄러 제어 (운영자 전용)
# ==========================================================

# ✅ [MANUAL] 특정 월(미지정 시 이번 달) 즉시 처리
@router.post("/manual-trigger", dependencies=[Depends(require_operator_token)])
async def manual_trigger(payload: ManualTriggerRequest, scheduler: MonthlyResultScheduler = Depends(get_scheduler)):
    stats = await scheduler.manual_trigger(payload.year, payload.month)
    label = f"{payload.year}-{payload.month:02d}" if payload.year and payload.month else "이번 달"
    return ok(stats, f"{label} 월간 결과 처리가 완료되었습니다")

@router.post("/scheduler/start", dependencies=[Depends(require_operator_token)])
async def start_scheduler(scheduler: MonthlyResultScheduler = Depends(get_scheduler)):
    started = scheduler.start()
    return ok(scheduler.status(), "스케줄러를 시작했습니다" if started else "스케줄러가 이미 실행 중입니다")

@router.post("/scheduler/stop", dependencies=[Depends(require_operator_token)])
async def stop_scheduler(scheduler: MonthlyResultScheduler = Depends(get_scheduler)):
    stopped = scheduler.stop()
    return ok(scheduler.status(), "스케줄러를 중지했습니다" if stopped else "스케줄러가 실행 중이 아닙니다")

# ✅ [STATUS] 스케줄러 상태 + 처리 중인 키
@router.get("/status")
def get_status(
    scheduler: MonthlyResultScheduler = Depends(get_scheduler),
    coordinator: TriggerCoordinator = Depends(get_trigger_coordinator),
):
    return ok({
        **scheduler.status(),
        "processing_keys": coordinator.registry.active_keys(),
        "reprocess_all_batches_in_month": coordinator.reprocess_all_batches_in_month,
    })


# ==========================================================
# [3단계] 조회
# ==========================================================

# ✅ [STATS] 월별 처리 통계
@router.get("/processing-stats/{year}/{month}")
def get_processing_stats(year: YearPath, month: MonthPath, db: Session = Depends(get_db)):
    stats = MonthlyProcessor(db).get_month_statistics(year, month)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"{year}-{month:02d} 결과가 없습니다")
    return ok(stats)

# ✅ [CHECK] 처리 여부
@router.get("/check-processed/{year}/{month}")
def check_processed(year: YearPath, month: MonthPath, db: Session = Depends(get_db)):
    processed = MonthlyProcessor(db).is_month_processed(year, month)
    return ok({
        "year": year,
        "month": month,
        "is_processed": processed,
        "message": f"{year}-{month:02d} 결과가 {'처리되었습니다' if processed else '아직 처리되지 않았습니다'}",
    })

# ✅ [MONTHS] 최근 6개월 처리 가능 여부
@router.get("/available-months")
def available_months(db: Session = Depends(get_db)):
    processor = MonthlyProcessor(db)
    today = date.today()
    months = []
    year, month = today.year, today.month
    for _ in range(6):
        months.append({
            "year": year,
            "month": month,
            "month_name": date(year, month, 1).strftime("%B"),
            "is_processed": processor.is_month_processed(year, month),
            "can_process": (year, month) < (today.year, today.month),   # 지난 달만
        })
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return ok(months)

# ✅ [READ] 저장된 월간 결과 (batch_id로 필터 가능)
@router.get("/results/{year}/{month}")
def read_monthly_results(
    year: YearPath,
    month: MonthPath,
    batch_id: Optional[int] = Query(None, description="반 ID (미지정 시 전체)"),
    db: Session = Depends(get_db),
):
    rows = list_monthly_results(db, year, month, batch_id)
    return ok([MonthlyResultOut.model_validate(r) for r in rows])

# ✅ [READ] 학년별 상위권 캐시
@router.get("/top-performers/{year}/{month}")
def read_top_performers(year: YearPath, month: MonthPath, db: Session = Depends(get_db)):
    rows = list_top_performers(db, year, month)
    return ok([TopPerformerOut.model_validate(r) for r in rows])
