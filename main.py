from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

# ✅ 로깅 설정 (LOG_LEVEL), HTTP 라이브러리 디버그 로그 비활성화
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ DB / 모델 (create_all 대상 테이블 등록)
from database.db import Base, engine
from models import attendance, batches, calendar, exams, monthly_results, students  # noqa: F401

# ✅ 라우터 임포트
from routers import calendar as calendar_router
from routers import monthly_results as monthly_results_router
from services.results.scheduler import monthly_result_scheduler

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS 설정 (프론트엔드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 (일관된 JSON 에러 포맷)
add_error_handlers(app)

# ✅ /v1 프리픽스 라우터 등록
app.include_router(monthly_results_router.router, prefix="/v1")
app.include_router(calendar_router.router,        prefix="/v1")

# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}

@app.on_event("startup")
async def _startup():
    Base.metadata.create_all(bind=engine)
    if settings.SCHEDULER_AUTOSTART:
        monthly_result_scheduler.start()
    logger.info(f"{settings.APP_TITLE} 시작 (ENV={settings.ENV})")

@app.on_event("shutdown")
async def _shutdown():
    monthly_result_scheduler.stop()

# ✅ 루트 엔드포인트
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - 월간 성적 자동 산출"}
