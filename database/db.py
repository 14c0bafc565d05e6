from sqlalchemy import create_engine               # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base        # 모델의 Base 클래스
from sqlalchemy.orm import sessionmaker            # 세션 팩토리 함수

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기


def build_engine(url: str, **kwargs):
    """
    URL에 맞는 엔진 생성
    - SQLite는 스레드 간 세션 사용(run_in_executor)을 위해 check_same_thread 해제
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, echo=settings.DB_ECHO, **kwargs)


# ✅ 환경변수에서 DB 연결 URL을 불러와 엔진 생성
engine = build_engine(settings.DATABASE_URL)

# ✅ 세션 팩토리: DB 연결에 사용할 세션 생성기 정의
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


# ✅ FastAPI 의존성: 요청 단위 세션
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
