from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # 학생 기본 정보 테이블 (외부 관리, 엔진은 읽기 전용)

    id = Column(Integer, primary_key=True, index=True)                         # 고유 학생 ID (Primary Key)
    first_name = Column(String(100), nullable=False)                           # 이름
    last_name = Column(String(100), nullable=False, default="")                # 성
    batch_id = Column(Integer, ForeignKey("batches.id"), index=True)           # 소속 반(batch) ID
    class_level = Column(String(10))                                           # 학년 (예: 6, 7, 8, 9, 10)
    is_active = Column(Boolean, nullable=False, default=True)                  # 재원 여부
    phone = Column(String(20))                                                 # 학생 연락처
    parent_phone = Column(String(20))                                          # 보호자 연락처

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
