from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint
from database.db import Base

# ✅ 3단계 출결 상태
ATTENDANCE_PRESENT = "present"    # 출석 점수 + 보너스 점수
ATTENDANCE_EXCUSED = "excused"    # 보너스 점수만
ATTENDANCE_ABSENT = "absent"      # 점수 없음

class Attendance(Base):
    __tablename__ = "attendance"  # 출결 기록 테이블 (외부 관리, 엔진은 읽기 전용)

    id = Column(Integer, primary_key=True, index=True)                           # 출결 고유 ID (Primary Key)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)                              # 날짜
    status = Column(String(20), nullable=False, default=ATTENDANCE_PRESENT)      # present / excused / absent
    notes = Column(String(200))                                                  # 비고

    __table_args__ = (
        UniqueConstraint("student_id", "batch_id", "date", name="uq_attendance_student_batch_date"),
    )
