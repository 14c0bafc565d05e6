from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from database.db import Base

class Exam(Base):
    __tablename__ = "exams"  # 시험 정보 테이블 (외부 관리, 엔진은 읽기 전용)

    id = Column(Integer, primary_key=True, index=True)                          # 시험 고유 ID
    title = Column(String(200), nullable=False)                                 # 시험 제목
    batch_id = Column(Integer, ForeignKey("batches.id"), index=True)            # 대상 반 ID
    exam_mode = Column(String(20), nullable=False, default="regular")           # regular(오프라인) / online
    total_marks = Column(Integer, default=0)                                    # 만점
    is_active = Column(Boolean, nullable=False, default=True)                   # 활성 여부
    created_at = Column(DateTime, nullable=False, default=datetime.now)         # 생성 시각 (월 판정 기준)


class ExamSubmission(Base):
    __tablename__ = "exam_submissions"  # 학생별 시험 제출/채점 테이블

    id = Column(Integer, primary_key=True, index=True)                          # 제출 고유 ID
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    marks_obtained = Column(Float)                                              # 교사가 입력한 점수 (없으면 미채점)
    percentage = Column(Float)                                                  # 백분율 점수 (있으면 우선 사용)
