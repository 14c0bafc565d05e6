from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from database.db import Base

class MonthlyResult(Base):
    __tablename__ = "monthly_results"  # 월간 종합 성적 (반/월 단위로 통째 교체)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)                            # 1~12
    class_level = Column(String(10), nullable=False)                   # 6, 7, 8, 9, 10

    # 시험
    exam_average = Column(Integer, default=0)                          # 0~100
    total_exams = Column(Integer, default=0)

    # 출결
    present_days = Column(Integer, default=0)
    excused_days = Column(Integer, default=0)
    absent_days = Column(Integer, default=0)
    working_days = Column(Integer, nullable=False)
    attendance_percentage = Column(Integer, default=0)                 # present 기준 0~100
    bonus_marks = Column(Integer, default=0)                           # present + excused 기준 0~100

    # 최종
    final_score = Column(Integer, default=0)                           # 가중 합산 0~100
    class_rank = Column(Integer, default=0)
    total_students = Column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint("student_id", "batch_id", "year", "month", name="uq_monthly_result_student_batch_month"),
    )


class TopPerformer(Base):
    __tablename__ = "top_performers"  # 학년별 상위 N명 캐시 (월 단위로 통째 교체)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    class_level = Column(String(10), nullable=False)
    rank = Column(Integer, nullable=False)                             # 1 ~ N
    final_score = Column(Integer, nullable=False)
    student_name = Column(String(200), nullable=False)
